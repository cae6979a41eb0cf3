"""
Configuration and settings for the function gateway.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings, loaded once per process."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True
    )

    api_prefix: str = Field(default="/functions")
    log_level: str = Field(default="INFO")

    # BaaS
    base44_app_id: Optional[str] = Field(default=None)
    base44_server_url: Optional[str] = Field(default=None)
    base44_service_token: Optional[str] = Field(default=None)

    # Pinterest
    pinterest_access_token: Optional[str] = Field(default=None)
    pinterest_api_base: str = Field(default="https://api.pinterest.com/v1")
    pinterest_board_name: str = Field(default="Nos Livres")
    share_link: str = Field(default="https://nos-livres.app")
    app_name: str = Field(default="Nos Livres")

    # Push notifications (FCM legacy HTTP API)
    fcm_server_key: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    def missing_secrets(self) -> list[str]:
        """Names of the secrets the actions need but that are not set."""
        required = {
            "PINTEREST_ACCESS_TOKEN": self.pinterest_access_token,
            "FCM_SERVER_KEY": self.fcm_server_key,
        }
        if not self.use_in_memory_backends:
            required["BASE44_APP_ID"] = self.base44_app_id
            required["BASE44_SERVER_URL"] = self.base44_server_url
            required["BASE44_SERVICE_TOKEN"] = self.base44_service_token
        return [name for name, value in required.items() if not value]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
