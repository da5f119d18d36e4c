"""Supabase repository for key-value settings."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from balance_tracker.services.settings import SettingsRepository


@dataclass
class SupabaseSettingsRepository(SettingsRepository):
    """Supabase implementation backed by the ``app_settings`` table."""

    client: Client

    def get_value(self, key: str) -> str | None:
        """Return the stored value for a key."""
        response = (
            self.client.table("app_settings")
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0].get("value")

    def set_value(self, key: str, value: str | None) -> None:
        """Upsert a value, or delete the key when ``value`` is None."""
        if value is None:
            self.client.table("app_settings").delete().eq("key", key).execute()
            return
        self.client.table("app_settings").upsert(
            {
                "key": key,
                "value": value,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).execute()
