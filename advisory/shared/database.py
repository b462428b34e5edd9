"""
Shared database service (user directory)
Supabase PostgREST client plus the service layer used by the phone flow
"""
import requests
import logging
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from urllib.parse import quote

from advisory.config import settings

logger = logging.getLogger(__name__)

# ============================================================
# SUPABASE CLIENT
# ============================================================
class SupabaseClient:
    def __init__(self):
        self.supabase_url = settings.supabase_url
        self.service_key = settings.supabase_service_role
        self.timeout = settings.supabase_timeout_seconds

        # Directory writes and cross-user lookups need the service role
        self.service_headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    def make_request(self, method, endpoint, data=None):
        """
        Unified Supabase request wrapper.
        Query strings belong in the endpoint; `data` is only sent as a JSON body.
        """
        url = f"{self.supabase_url}{endpoint}"
        headers = self.service_headers

        try:
            if method == "GET":
                response = requests.get(url, headers=headers, timeout=self.timeout)

            elif method == "PATCH":
                response = requests.patch(url, headers=headers, json=data, timeout=self.timeout)

            else:
                raise ValueError(f"Unsupported method: {method}")

            # Raise errors for any non-2xx status
            response.raise_for_status()

            return response.json() if response.content else {}

        except requests.exceptions.RequestException as e:
            logger.error(f"Supabase request failed: {e} | endpoint: {endpoint.split('?')[0]}")
            raise


    # ============================================================
    # USER OPERATIONS
    # ============================================================
    def get_user_by_phone(self, phone):
        endpoint = f"/rest/v1/users?phone=eq.{quote(phone)}&select=id,phone,phone_verified"
        response = self.make_request("GET", endpoint)
        return response[0] if response else None


    def get_user_by_id(self, user_id):
        endpoint = f"/rest/v1/users?id=eq.{quote(user_id)}"
        response = self.make_request("GET", endpoint)
        return response[0] if response else None


    def update_user(self, user_id, updates):
        endpoint = f"/rest/v1/users?id=eq.{quote(user_id)}"
        return self.make_request("PATCH", endpoint, updates)


# ============================================================
# DATABASE SERVICE LAYER
# ============================================================
class DatabaseService:
    def __init__(self, supabase_client: SupabaseClient):
        self.supabase = supabase_client

    # ------------------------------------------------------------
    # GETTERS
    # ------------------------------------------------------------
    def get_user_by_phone(self, phone: str) -> Optional[Dict[str, Any]]:
        try:
            return self.supabase.get_user_by_phone(phone)
        except Exception as e:
            logger.error(f"Error getting user by phone: {e}")
            return None

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self.supabase.get_user_by_id(user_id)
        except Exception as e:
            logger.error(f"Error getting user by ID: {e}")
            return None

    def is_phone_verified(self, phone: str) -> bool:
        user = self.get_user_by_phone(phone)
        return bool(user and user.get("phone_verified"))

    # ------------------------------------------------------------
    # UPDATES
    # ------------------------------------------------------------
    def update_user(self, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply updates and return the stored record, or None on failure"""
        try:
            processed_updates = {}

            for key, value in updates.items():
                processed_updates[key] = (
                    value.isoformat() if isinstance(value, datetime) else value
                )

            response = self.supabase.update_user(user_id, processed_updates)
            if not response:
                return None

            return response[0] if isinstance(response, list) else response

        except Exception as e:
            logger.error(f"Error updating user: {e}")
            return None

    def mark_phone_verified(self, user_id: str, phone: str) -> Optional[Dict[str, Any]]:
        return self.update_user(
            user_id,
            {
                "phone": phone,
                "phone_verified": True,
                "updated_at": datetime.now(timezone.utc),
            }
        )


# ============================================================
# Global instances
# ============================================================
supabase_client = SupabaseClient()
database_service = DatabaseService(supabase_client)
