from __future__ import annotations

from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "xsrf-filter"
    app_env: str = "development"
    app_version: str = "0.1.0"

    log_level: str = "INFO"

    # XSRF
    # Protection is on only when xsrf_protection_enabled is true AND
    # xsrf_disable_protection is false. Either switch alone turns it off.
    xsrf_protection_enabled: bool = True
    # Legacy spelling of the kill switch (server.xsrf.disableProtection)
    xsrf_disable_protection: bool = False
    xsrf_whitelist: List[str] = []

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("xsrf_whitelist")
    @classmethod
    def validate_whitelist(cls, v: List[str]) -> List[str]:
        """Strip entries, reject anything that is not an absolute path, drop duplicates."""
        cleaned: List[str] = []
        for entry in v:
            entry = entry.strip()
            if not entry.startswith("/"):
                raise ValueError(f"Whitelist entry must start with '/': {entry!r}")
            if entry not in cleaned:
                cleaned.append(entry)
        return cleaned

    @property
    def protection_enabled(self) -> bool:
        return self.protection_disabled_by is None

    @property
    def protection_disabled_by(self) -> Optional[str]:
        """Name of the option that turned protection off, or None while it is on."""
        if self.xsrf_disable_protection:
            return "xsrf_disable_protection"
        if not self.xsrf_protection_enabled:
            return "xsrf_protection_enabled"
        return None


settings = Settings()
