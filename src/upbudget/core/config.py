#!/usr/bin/env python3
"""
Configuration Management for upbudget

Handles environment-based configuration with secure defaults and validation.
Supports multiple environments (development, test, production).
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


@dataclass
class UpApiConfig:
    """Up Bank API configuration."""

    base_url: str = "https://api.up.com.au/api/v1"
    timeout: int = 30  # Seconds per request
    page_size: int = 30  # Default page size for interactive listings
    sync_page_size: int = 100  # Page size used when walking full transaction history
    category_expansion_pages: int = 3  # Extra pages followed by the category helper


@dataclass
class StorageConfig:
    """Local storage configuration."""

    db_path: Path
    token_file: Path


@dataclass
class Config:
    """
    Main configuration class for upbudget.

    Loads configuration from environment variables with secure defaults
    and validation for each environment type.
    """

    environment: Environment
    data_dir: Path

    up: UpApiConfig
    storage: StorageConfig

    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> "Config":
        """Create configuration from environment variables."""
        env = Environment(os.getenv("UPBUDGET_ENV", "development"))

        if env == Environment.TEST:
            default_test_dir = Path(tempfile.gettempdir()) / "test_upbudget"
            data_dir = Path(os.getenv("UPBUDGET_DATA_DIR", str(default_test_dir)))
        else:
            data_dir = Path(os.getenv("UPBUDGET_DATA_DIR", "./data")).expanduser().resolve()

        data_dir.mkdir(parents=True, exist_ok=True)

        up = UpApiConfig(
            base_url=os.getenv("UP_API_BASE_URL", "https://api.up.com.au/api/v1").rstrip("/"),
            timeout=int(os.getenv("UP_TIMEOUT", "30")),
            page_size=int(os.getenv("UP_PAGE_SIZE", "30")),
            sync_page_size=int(os.getenv("UP_SYNC_PAGE_SIZE", "100")),
        )

        storage = StorageConfig(
            db_path=Path(os.getenv("UPBUDGET_DB_PATH", str(data_dir / "budgets.db"))),
            token_file=Path(os.getenv("UP_TOKEN_FILE", str(data_dir / "credentials.json"))),
        )

        return cls(
            environment=env,
            data_dir=data_dir,
            up=up,
            storage=storage,
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> list:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.data_dir.exists():
            errors.append(f"data_dir does not exist: {self.data_dir}")

        if not self.up.base_url.startswith(("https://", "http://")):
            errors.append(f"UP_API_BASE_URL must be an http(s) URL: {self.up.base_url}")

        if self.environment == Environment.PRODUCTION and not self.up.base_url.startswith("https://"):
            errors.append("UP_API_BASE_URL must use https in production")

        if self.up.timeout <= 0:
            errors.append("Up API timeout must be positive")

        # The Up API caps page[size] at 100
        for name, size in [("UP_PAGE_SIZE", self.up.page_size), ("UP_SYNC_PAGE_SIZE", self.up.sync_page_size)]:
            if not 1 <= size <= 100:
                errors.append(f"{name} must be 1-100, got {size}")

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Unknown LOG_LEVEL: {self.log_level}")

        return errors

    def setup_logging(self) -> None:
        """Configure logging based on configuration."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.environment == Environment.DEVELOPMENT:
            format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            format_str = "%(asctime)s - %(levelname)s - %(message)s"

        logging.basicConfig(level=level, format=format_str, datefmt="%Y-%m-%d %H:%M:%S")

        # Reduce noise from external libraries in production
        if self.environment == Environment.PRODUCTION:
            logging.getLogger("urllib3").setLevel(logging.WARNING)
            logging.getLogger("requests").setLevel(logging.WARNING)

    def get_sensitive_fields(self) -> list:
        """Get list of field names that contain sensitive data."""
        return ["storage.token_file"]

    def to_dict(self, include_sensitive: bool = False) -> dict[str, Any]:
        """Convert configuration to dictionary, optionally excluding sensitive data."""
        result: dict[str, Any] = {}

        for field_name, field_value in self.__dict__.items():
            if hasattr(field_value, "__dict__") and not isinstance(field_value, (Path, Enum)):
                nested_dict: dict[str, Any] = {}
                for nested_name, nested_value in field_value.__dict__.items():
                    full_field_name = f"{field_name}.{nested_name}"

                    if not include_sensitive and full_field_name in self.get_sensitive_fields():
                        nested_dict[nested_name] = "***REDACTED***"
                    elif isinstance(nested_value, Path):
                        nested_dict[nested_name] = str(nested_value)
                    else:
                        nested_dict[nested_name] = nested_value

                result[field_name] = nested_dict
            elif isinstance(field_value, Path):
                result[field_name] = str(field_value)
            elif isinstance(field_value, Enum):
                result[field_name] = field_value.value
            else:
                result[field_name] = field_value

        return result


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_environment()

        errors = _config.validate()
        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        _config.setup_logging()

    return _config


def reload_config() -> Config:
    """Reload configuration from environment (useful for testing)."""
    global _config
    _config = None
    return get_config()
