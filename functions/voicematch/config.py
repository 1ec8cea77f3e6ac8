"""
Configuration and settings for the voice match client.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the client and its HTTP shell."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api", validation_alias="API_PREFIX")

    # Supabase project. The client stays uninitialized if either is empty.
    supabase_url: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
    )
    supabase_anon_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"
        ),
    )

    # Auth session handling inside the Supabase client
    persist_session: bool = Field(
        default=True, validation_alias="SUPABASE_PERSIST_SESSION"
    )
    auto_refresh_token: bool = Field(
        default=True, validation_alias="SUPABASE_AUTO_REFRESH_TOKEN"
    )

    # Realtime
    realtime_events_per_second: int = Field(
        default=2, ge=1, validation_alias="SUPABASE_REALTIME_EVENTS_PER_SECOND"
    )

    # Storage
    voice_profile_bucket: str = Field(
        default="voice-profiles", validation_alias="VOICE_PROFILE_BUCKET"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="VOICEMATCH_USE_IN_MEMORY_BACKENDS"
    )

    # HTTP server
    host: str = Field(default="0.0.0.0", validation_alias="VOICEMATCH_HOST")
    port: int = Field(default=8000, validation_alias="VOICEMATCH_PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
