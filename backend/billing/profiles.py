"""User profiles (plan + attempts) backed by the Supabase ``profiles`` table.

Without Supabase credentials the store keeps profiles in memory, which is what
local development and the tests use.
"""

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from supabase import Client, create_client

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

PROFILES_TABLE = "profiles"


class ProfileStore:
    def __init__(self, client: Optional[Client] = None):
        self.client = client
        self._memory: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def from_env(cls) -> "ProfileStore":
        if SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY:
            return cls(create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY))
        print("[billing] Supabase not configured, keeping profiles in memory")
        return cls()

    def _fetch(self, user_id: str) -> Optional[Dict[str, Any]]:
        if self.client is None:
            return self._memory.get(user_id)
        resp = (
            self.client.table(PROFILES_TABLE)
            .select("id, email, plan, attempts")
            .eq("id", user_id)
            .maybe_single()
            .execute()
        )
        return resp.data if resp is not None else None

    def ensure_profile(self, user_id: str, email: Optional[str] = None) -> Dict[str, Any]:
        profile = self._fetch(user_id)
        if profile:
            return profile
        profile = {"id": user_id, "email": email, "plan": "free", "attempts": 0}
        if self.client is None:
            self._memory[user_id] = profile
        else:
            print(f"[billing] Creating profile for {user_id}")
            self.client.table(PROFILES_TABLE).upsert(profile).execute()
        return dict(profile)

    def get_plan(self, user_id: str) -> str:
        profile = self._fetch(user_id)
        return (profile or {}).get("plan") or "free"

    def _update(self, user_id: str, values: Dict[str, Any]):
        if self.client is None:
            self._memory.setdefault(user_id, {"id": user_id, "plan": "free", "attempts": 0}).update(values)
            return
        self.client.table(PROFILES_TABLE).update(values).eq("id", user_id).execute()

    def mark_pro(self, user_id: str):
        print(f"[billing] Marking {user_id} as pro")
        self._update(user_id, {"plan": "pro"})

    def set_attempts(self, user_id: str, attempts: int):
        self._update(user_id, {"attempts": attempts})
