"""
Authentication middleware with local validation of Supabase access tokens
"""
import jwt
import logging
from fastapi import HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
import os
from supabase import create_client, Client
from dotenv import load_dotenv

from services.user_service import UserService

# Load environment variables first
load_dotenv()

logger = logging.getLogger(__name__)

# JWT settings
JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"

class AuthMiddleware:
    def __init__(self):
        supabase_url = os.getenv("SUPABASE_URL")
        supabase_key = os.getenv("SUPABASE_SERVICE_KEY")

        if not supabase_url:
            raise ValueError("SUPABASE_URL environment variable is required")
        if not supabase_key:
            raise ValueError("SUPABASE_SERVICE_KEY environment variable is required")
        if not JWT_SECRET:
            raise ValueError("SUPABASE_JWT_SECRET environment variable is required")

        self.supabase: Client = create_client(supabase_url, supabase_key)
        self.users = UserService(self.supabase)
        logger.info("Supabase client initialized with local JWT validation")

    async def verify_token(self, credentials: HTTPAuthorizationCredentials) -> dict:
        """
        Verify a Supabase access token locally without a round-trip to Supabase
        """
        try:
            payload = jwt.decode(
                credentials.credentials,
                JWT_SECRET,
                algorithms=[JWT_ALGORITHM],
                audience=JWT_AUDIENCE
            )
        except jwt.ExpiredSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired"
            )
        except jwt.InvalidAudienceError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token audience"
            )
        except jwt.InvalidSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token signature"
            )
        except jwt.InvalidTokenError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token: {str(e)}"
            )

        user_id = payload.get("sub")
        email = payload.get("email")

        if not user_id or not email:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token: missing user information"
            )

        profile = await self.users.get_profile(user_id) or {}

        return {
            "id": user_id,
            "email": email,
            "name": profile.get("name"),
            "bio": profile.get("bio") or "",
        }

# Global auth middleware instance - created on first use
auth_middleware = None

def get_auth_middleware():
    """Get or create auth middleware instance"""
    global auth_middleware
    if auth_middleware is None:
        auth_middleware = AuthMiddleware()
    return auth_middleware
