"""
Authentication utilities
"""
import re

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

def validate_email(email: str) -> bool:
    """
    Basic email validation
    """
    return EMAIL_PATTERN.match(email) is not None

def validate_password(password: str) -> tuple[bool, str]:
    """
    Validate password strength
    """
    if len(password) < 8:
        return False, "Password must be at least 8 characters long"

    if not any(c.isupper() for c in password):
        return False, "Password must contain at least one uppercase letter"

    if not any(c.islower() for c in password):
        return False, "Password must contain at least one lowercase letter"

    if not any(c.isdigit() for c in password):
        return False, "Password must contain at least one number"

    return True, "Password is valid"

def friendly_auth_error(message: str, default: str) -> str:
    """
    Turn an identity provider error message into text for the user
    """
    lowered = (message or "").lower()
    if "already registered" in lowered:
        return "This email address is already registered."
    if "invalid login credentials" in lowered:
        return "Incorrect email address or password."
    if "email not confirmed" in lowered:
        return "Please confirm your email address before signing in."
    if "rate limit" in lowered:
        return "Too many attempts. Please wait a moment and try again."
    return default
