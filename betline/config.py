from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # The Odds API
    odds_api_key: str | None = None
    odds_api_base_url: str = "https://api.the-odds-api.com/v4"
    odds_regions: str = "us"
    odds_format: str = "decimal"

    # Sports to refresh (JSON array in .env)
    sports: list[str] = Field(
        default=[
            "soccer_uefa_european_championship",
            "soccer_epl",
            "soccer_spain_la_liga",
            "soccer_germany_bundesliga",
            "icehockey_nhl",
            "mma_mixed_martial_arts",
        ]
    )

    # Bookmakers to prefer when picking a market (JSON array in .env).
    # Empty means take whichever bookmaker the provider lists first.
    preferred_bookmakers: list[str] = Field(default=[])

    # Refresh cadence; the provider plan allows one run per 15 minutes
    refresh_interval_minutes: int = 15

    # Betting closes this many minutes before an event starts
    bet_cutoff_minutes: int = 15

    # Database
    db_path: str | None = "betline.db"

    # Logging
    log_level: str = "INFO"

    def missing_required(self) -> list[str]:
        """Names of required values that are unset or blank."""
        missing = []
        if not self.odds_api_key:
            missing.append("odds_api_key")
        if not self.db_path:
            missing.append("db_path")
        return missing
