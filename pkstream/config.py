"""
Configuration management for the archive extractor.
Loads settings from environment variables with sensible defaults.
"""
import os
from typing import Optional
from dotenv import load_dotenv


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self, env_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            env_file: Optional path to .env file
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        # Decompression
        self.inflate_chunk_size = int(os.getenv('INFLATE_CHUNK_SIZE', '65536'))
        self.verify_crc = _env_flag('VERIFY_CRC', 'false')

        # Download
        self.chunk_size = int(os.getenv('CHUNK_SIZE', '65536'))
        self.download_timeout = int(os.getenv('DOWNLOAD_TIMEOUT', '60'))

        # Storage
        self.replace_existing = _env_flag('REPLACE_EXISTING', 'false')

        # Logging
        self.log_level = os.getenv('LOG_LEVEL', 'INFO').upper()

        if self.inflate_chunk_size <= 0:
            raise ValueError(f"INFLATE_CHUNK_SIZE must be positive, got {self.inflate_chunk_size}")
        if self.chunk_size <= 0:
            raise ValueError(f"CHUNK_SIZE must be positive, got {self.chunk_size}")

    def __repr__(self) -> str:
        """String representation of config."""
        return (
            f"Config(inflate_chunk_size={self.inflate_chunk_size}, "
            f"verify_crc={self.verify_crc}, "
            f"replace_existing={self.replace_existing})"
        )


# Lazily created default instance; components also accept an explicit Config
_config: Optional[Config] = None


def get_config(env_file: Optional[str] = None) -> Config:
    """
    Get or create the default config instance.

    Args:
        env_file: Optional path to .env file

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config(env_file)
    return _config


def reset_config():
    """Reset the default config instance (useful for testing)."""
    global _config
    _config = None
