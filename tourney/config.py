"""
Runtime configuration loaded from the environment.
"""
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from tourney.utils.constants import DEFAULT_INITIAL_SECONDS, DEFAULT_INCREMENT_SECONDS

load_dotenv()


@dataclass
class Settings:
    """Process-wide settings."""
    data_dir: str = "data"
    initial_seconds: int = DEFAULT_INITIAL_SECONDS
    increment_seconds: int = DEFAULT_INCREMENT_SECONDS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from TOURNEY_* environment variables."""
        return cls(
            data_dir=os.getenv("TOURNEY_DATA_DIR", "data"),
            initial_seconds=int(os.getenv("TOURNEY_INITIAL_SECONDS", DEFAULT_INITIAL_SECONDS)),
            increment_seconds=int(os.getenv("TOURNEY_INCREMENT_SECONDS", DEFAULT_INCREMENT_SECONDS)),
            log_level=os.getenv("TOURNEY_LOG_LEVEL", "INFO").upper(),
        )
