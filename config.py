"""
Configuration management using Pydantic Settings with safe access wrapper
"""
import yaml
from pydantic_settings import BaseSettings
from typing import Optional, Any

from exceptions import InvalidConfiguration


class Settings(BaseSettings):
    # Application settings
    app_name: str = "lexiscan"
    version: str = "1.0.0"
    debug: bool = False
    environment: str = "production"

    # Logging settings
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"
    log_file_max_bytes: int = 10485760
    log_file_backup_count: int = 10

    # Pattern compilation
    strict_compile: bool = False

    # Scan budgets
    default_step_budget: Optional[int] = None

    # Scoring
    default_reduction: str = "sum"

    # Entity extraction
    context_window: int = 50

    # Pattern catalogue detection
    detection_threshold: float = 0.3
    pattern_catalog_path: Optional[str] = None

    class Config:
        env_prefix = "LEXISCAN_"
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"   # allow unknown env vars without error

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.validate_settings()

    def validate_settings(self):
        """Validate critical settings on startup"""
        errors = []

        # Validate environment
        if self.environment not in ["development", "testing", "production"]:
            errors.append(f"Invalid environment: {self.environment}")

        if self.log_level.upper() not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            errors.append(f"Invalid log level: {self.log_level}")

        if self.default_step_budget is not None and self.default_step_budget <= 0:
            errors.append("Default step budget must be positive when set")

        valid_reductions = ["sum", "average", "max"]
        if self.default_reduction not in valid_reductions:
            errors.append(
                f"Invalid default reduction: {self.default_reduction}. Valid options: {valid_reductions}"
            )

        if self.context_window < 0:
            errors.append("Context window cannot be negative")

        if not 0.0 <= self.detection_threshold <= 1.0:
            errors.append("Detection threshold must be within [0, 1]")

        if errors:
            raise ValueError(f"Configuration errors: {'; '.join(errors)}")


class SafeSettings:
    """Safe wrapper for settings with fallback defaults"""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._defaults = {
            "log_level": "INFO",
            "log_to_file": False,
            "log_dir": "logs",
            "environment": "production",
            "debug": False,
            "strict_compile": False,
            "default_reduction": "sum",
            "context_window": 50,
            "detection_threshold": 0.3,
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Safely get setting value with fallback"""
        value = getattr(self._settings, key, None)
        if value is None:
            value = self._defaults.get(key, default)
        return value

    def __getattr__(self, key: str) -> Any:
        """Proxy attribute access with safety"""
        return self.get(key)

    @property
    def raw(self) -> Settings:
        """Get raw settings object"""
        return self._settings


# Initialize settings with safety wrapper
_raw_settings = Settings()
settings = SafeSettings(_raw_settings)


def load_yaml_file(path) -> Any:
    """
    Read one YAML configuration file

    Args:
        path: File path (str or Path)

    Returns:
        Parsed document ({} for an empty file)

    Raises:
        InvalidConfiguration: If the file cannot be read or parsed
    """
    # logger imports settings from this module
    from logger import get_logger

    logger = get_logger(__name__)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config from {path}: {e}")
        raise InvalidConfiguration(f"Cannot load configuration file {path}: {e}", field=str(path), original_error=e) from e

    logger.info(f"Loaded configuration from {path}")
    return data or {}
