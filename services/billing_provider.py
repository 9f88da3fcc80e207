"""
Selects the billing backend from BILLING_MODE
"""
import os
import logging
from typing import Union

from auth.middleware import get_auth_middleware
from services.mock_billing_service import MockBillingService
from services.stripe_service import StripeService

logger = logging.getLogger(__name__)

BillingService = Union[StripeService, MockBillingService]

# The mock keeps its state in memory, so it lives for the whole process
mock_billing_service = None

def get_billing_mode() -> str:
    return os.getenv("BILLING_MODE", "stripe").strip().lower()

def get_billing_service() -> BillingService:
    global mock_billing_service
    mode = get_billing_mode()
    if mode == "mock":
        if mock_billing_service is None:
            logger.info("Using in-memory mock billing")
            mock_billing_service = MockBillingService()
        return mock_billing_service
    if mode != "stripe":
        raise ValueError(f"Unknown BILLING_MODE {mode!r}; expected 'stripe' or 'mock'")

    auth_middleware = get_auth_middleware()
    return StripeService(auth_middleware.supabase)
