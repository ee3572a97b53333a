"""
Supabase Admin Service

Service-role access to the parts of Supabase that are not plain tables:
the auth admin API, storage buckets and SQL functions exposed over RPC.
The supabase-py client is synchronous, so every call runs in a worker
thread.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from supabase import create_client, Client
from supabase.lib.client_options import ClientOptions

from app.config.settings import Settings


logger = logging.getLogger(__name__)


class SupabaseAdminService:

    def __init__(self, settings: Settings, client: Optional[Client] = None):
        self._settings = settings
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            options = ClientOptions(
                postgrest_client_timeout=30,
                storage_client_timeout=60,
            )
            self._client = create_client(
                self._settings.supabase_url,
                self._settings.supabase_service_role_key,
                options,
            )
        return self._client

    # =========================================================================
    # Auth admin
    # =========================================================================

    async def get_user_email(self, user_id: str) -> Optional[str]:
        response = await asyncio.to_thread(
            lambda: self.client.auth.admin.get_user_by_id(user_id)
        )
        user = getattr(response, "user", None)
        return getattr(user, "email", None) if user else None

    async def delete_user(self, user_id: str) -> None:
        """Delete the login identity; raises whatever the auth API raises."""
        await asyncio.to_thread(lambda: self.client.auth.admin.delete_user(user_id))

    # =========================================================================
    # RPC
    # =========================================================================

    async def rpc(self, function: str, params: Dict[str, Any]) -> Any:
        response = await asyncio.to_thread(
            lambda: self.client.rpc(function, params).execute()
        )
        return response.data

    # =========================================================================
    # Storage
    # =========================================================================

    async def list_files(self, bucket: str, prefix: str) -> List[str]:
        """Object paths directly under ``prefix``."""
        entries = await asyncio.to_thread(
            lambda: self.client.storage.from_(bucket).list(prefix)
        )
        return [f"{prefix}/{entry['name']}" for entry in entries or [] if entry.get("name")]

    async def remove_files(self, bucket: str, paths: List[str]) -> int:
        if not paths:
            return 0
        removed = await asyncio.to_thread(
            lambda: self.client.storage.from_(bucket).remove(paths)
        )
        return len(removed or [])

    async def upload_file(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Upload ``data`` and return its public URL."""
        storage = self.client.storage.from_(bucket)
        await asyncio.to_thread(
            lambda: storage.upload(path, data, {"content-type": content_type, "upsert": "false"})
        )
        return await asyncio.to_thread(lambda: storage.get_public_url(path))
