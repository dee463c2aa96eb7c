"""Abstract configuration shared by every front end of the console."""
from abc import ABC, abstractmethod
from pathlib import Path
import logging

PAGE_SIZES = (10, 20, 50, 100)
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """Raised when a configuration value is missing or invalid."""


class BaseConfiguration(ABC):
    """
    Settings consumed by the coordinator and data layer.

    Subclasses decide where values come from; ``validate`` enforces the
    constraints common to all of them.
    """

    @property
    @abstractmethod
    def data_dir(self) -> Path:
        """Directory holding the local store file."""

    @property
    def store_path(self) -> Path:
        return self.data_dir / "local_store.json"

    @property
    def viewport_margin_x(self) -> int:
        """Horizontal margin removed on each side before layout."""
        return 24

    @property
    def viewport_margin_y(self) -> int:
        return 24

    @property
    def default_page_size(self) -> int:
        return 10

    @property
    def log_level(self) -> str:
        return "INFO"

    @property
    def default_changer(self) -> str:
        """Operator name pre-filled in the adjust form."""
        return "运维人员张三"

    @property
    def power_station(self) -> str:
        return "邳蒋青山泉变"

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigurationError: If any value is out of range
        """
        if self.viewport_margin_x < 0 or self.viewport_margin_y < 0:
            raise ConfigurationError("Viewport margins must not be negative")
        if self.default_page_size not in PAGE_SIZES:
            raise ConfigurationError(
                f"Page size must be one of {PAGE_SIZES}, got {self.default_page_size}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level: {self.log_level}")

    def logging_level(self) -> int:
        return getattr(logging, self.log_level.upper())
