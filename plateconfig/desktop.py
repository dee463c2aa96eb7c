"""Desktop configuration loaded from environment variables and .env."""
import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .base import BaseConfiguration, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".plate_console"


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


class DesktopConfiguration(BaseConfiguration):
    """Configuration for the PySide6 desktop console."""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        *,
        viewport_margin_x: int = 24,
        viewport_margin_y: int = 24,
        default_page_size: int = 10,
        log_level: str = "INFO",
        default_changer: str = "运维人员张三",
    ) -> None:
        self._data_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR
        self._margin_x = viewport_margin_x
        self._margin_y = viewport_margin_y
        self._page_size = default_page_size
        self._log_level = log_level
        self._changer = default_changer

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None,
                 dotenv: bool = True) -> "DesktopConfiguration":
        """
        Build configuration from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ``
            dotenv: If True, load a .env file into the environment first

        Returns:
            Validated DesktopConfiguration

        Raises:
            ConfigurationError: If a value is malformed or out of range
        """
        if dotenv:
            load_dotenv()
        env = os.environ if env is None else env

        data_dir = env.get("PLATE_DATA_DIR")
        config = cls(
            data_dir=Path(data_dir).expanduser() if data_dir else None,
            viewport_margin_x=_int_setting(env, "PLATE_VIEWPORT_MARGIN_X", 24),
            viewport_margin_y=_int_setting(env, "PLATE_VIEWPORT_MARGIN_Y", 24),
            default_page_size=_int_setting(env, "PLATE_PAGE_SIZE", 10),
            log_level=env.get("PLATE_LOG_LEVEL", "INFO"),
            default_changer=env.get("PLATE_CHANGER") or "运维人员张三",
        )
        config.validate()
        logger.debug("Loaded configuration: data_dir=%s page_size=%d",
                     config.data_dir, config.default_page_size)
        return config

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def viewport_margin_x(self) -> int:
        return self._margin_x

    @property
    def viewport_margin_y(self) -> int:
        return self._margin_y

    @property
    def default_page_size(self) -> int:
        return self._page_size

    @property
    def log_level(self) -> str:
        return self._log_level

    @property
    def default_changer(self) -> str:
        return self._changer
