"""Console settings from the environment and an optional .env file."""

import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from hopsconsole.formatting import DEFAULT_LOCALE, RelativeTimeFormatter

LOCALE_ENV = "HOPS_CONSOLE_LOCALE"
TZ_ENV = "HOPS_CONSOLE_TZ"


@dataclass
class Settings:
    locale: str = DEFAULT_LOCALE
    timezone: str | None = None

    def tzinfo(self) -> tzinfo | None:
        """Resolve the configured zone; None means the system local zone."""
        if not self.timezone:
            return None
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {self.timezone}") from e

    def formatter(self) -> RelativeTimeFormatter:
        return RelativeTimeFormatter(locale=self.locale, tz=self.tzinfo())


def _load_env(start: Path | None = None) -> None:
    """Load the nearest .env walking up from start (default CWD)."""
    cwd = start or Path.cwd()
    for parent in [cwd, *cwd.parents]:
        env_file = parent / ".env"
        if env_file.exists():
            load_dotenv(env_file)
            return


def load_settings(start: Path | None = None) -> Settings:
    _load_env(start)
    return Settings(
        locale=os.environ.get(LOCALE_ENV) or DEFAULT_LOCALE,
        timezone=os.environ.get(TZ_ENV) or None,
    )
