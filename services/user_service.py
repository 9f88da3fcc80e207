"""
User service for profile records
"""
from typing import Optional, Dict, Any
import logging
from supabase import Client

from config.decorators import retry_on_transient_error

logger = logging.getLogger(__name__)

class UserService:
    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    async def create_profile(self, user_id: str, name: Optional[str]) -> Dict[str, Any]:
        """
        Create the profile row for a newly registered user
        """
        profile_data = {
            "id": user_id,
            "name": name,
            "bio": "",
        }

        response = self.supabase.table("profiles").insert(profile_data).execute()
        if not response.data:
            raise RuntimeError(f"Failed to create profile for user {user_id}")

        logger.info(f"Created profile for user {user_id}")
        return response.data[0]

    @retry_on_transient_error
    def _fetch_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        response = self.supabase.table("profiles").select("id, name, bio").eq("id", user_id).limit(1).execute()
        return response.data[0] if response.data else None

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_profile(user_id)

    async def update_profile(self, user_id: str, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update name and/or bio. Creates the profile if it was never written.
        """
        filtered_data = {k: v for k, v in update_data.items() if v is not None}

        response = self.supabase.table("profiles").update(filtered_data).eq("id", user_id).execute()
        if response.data:
            logger.info(f"Updated profile: {user_id}")
            return response.data[0]

        response = self.supabase.table("profiles").insert({"id": user_id, "bio": "", **filtered_data}).execute()
        if response.data:
            logger.info(f"Created missing profile on update: {user_id}")
            return response.data[0]
        return None
