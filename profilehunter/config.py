"""
Runtime configuration.

Settings are read from environment variables, optionally seeded from a
``.env`` file in the working directory.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class ConfigError(ValueError):
    """Raised when an environment value cannot be parsed."""
    pass


def load_env() -> None:
    """Load .env from the working directory if present."""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


@dataclass
class Settings:
    apollo_api_key: Optional[str] = None
    initial_credits: int = 50
    delay_seconds: float = 2.0
    timeout: float = 10.0
    db_path: Path = Path("data/profilehunter.db")
    log_level: str = "INFO"
    user_agent: str = DEFAULT_USER_AGENT
    network_domain: str = "linkedin.com"
    search_url: str = "https://www.google.com/search"
    apollo_search_url: str = "https://api.apollo.io/v1/mixed_people/search"

    @property
    def profile_base_url(self) -> str:
        return f"https://www.{self.network_domain}/in/"

    @property
    def profile_marker(self) -> str:
        return f"{self.network_domain}/in/"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current environment, falling back to defaults."""
        defaults = cls()
        return cls(
            apollo_api_key=os.getenv("APOLLO_API_KEY") or None,
            initial_credits=_int_env("PROFILEHUNTER_INITIAL_CREDITS", defaults.initial_credits),
            delay_seconds=_float_env("PROFILEHUNTER_DELAY_SECONDS", defaults.delay_seconds),
            timeout=_float_env("PROFILEHUNTER_TIMEOUT", defaults.timeout),
            db_path=Path(os.getenv("PROFILEHUNTER_DB") or defaults.db_path),
            log_level=(os.getenv("PROFILEHUNTER_LOG_LEVEL") or defaults.log_level).upper(),
            user_agent=os.getenv("PROFILEHUNTER_USER_AGENT") or defaults.user_agent,
            search_url=os.getenv("PROFILEHUNTER_SEARCH_URL") or defaults.search_url,
            apollo_search_url=os.getenv("APOLLO_SEARCH_URL") or defaults.apollo_search_url,
        )
