"""Configuration management for smsledger."""

import logging
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Development mode
    dev_mode: bool = True

    # Data directory
    data_dir: Path = Path.home() / ".smsledger"

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    log_level: str = "INFO"

    # Duplicate detection
    cache_capacity: int = 200
    cache_max_age_days: int = 7
    duplicate_window_hours: int = 24
    similarity_threshold: float = 0.7

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # LOG_LEVEL and log_level both work
        extra="ignore",  # Ignore extra environment variables
    )

    @property
    def db_path(self) -> Path:
        """Get the SQLite database path."""
        suffix = "dev" if self.dev_mode else "prod"
        return self.data_dir / f"smsledger_{suffix}.db"

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def log_config(self) -> None:
        """Log current configuration."""
        logger.info("=" * 60)
        logger.info("CONFIGURATION LOADED")
        logger.info("=" * 60)
        logger.info(f"Dev Mode:            {self.dev_mode}")
        logger.info(f"Data Directory:      {self.data_dir}")
        logger.info(f"Database:            {self.db_path}")
        logger.info(f"API Host:            {self.api_host}:{self.api_port}")
        logger.info(f"Cache Capacity:      {self.cache_capacity}")
        logger.info(f"Cache Max Age:       {self.cache_max_age_days} days")
        logger.info(f"Duplicate Window:    +/-{self.duplicate_window_hours}h")
        logger.info(f"Similarity Cutoff:   {self.similarity_threshold}")
        logger.info("=" * 60)


# Global settings instance
settings = Settings()
