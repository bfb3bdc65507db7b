"""
Configuration management for the CRM harvest pipeline.

Loads settings from environment variables with sensible defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


class Config:
    """Configuration settings loaded from environment."""

    # Page settling: fixed wait after load-complete before reading the document
    SETTLE_DELAY_SECONDS: float = float(os.getenv('CRM_HARVEST_SETTLE_DELAY_SECONDS', '1.0'))

    # Store (empty URL selects the in-process MemoryStore)
    STORE_URL: str = os.getenv('CRM_HARVEST_STORE_URL', '')

    # Read-modify-write attempts before a lost compare-and-set is reported
    MERGE_MAX_ATTEMPTS: int = int(os.getenv('CRM_HARVEST_MERGE_MAX_ATTEMPTS', '5'))

    # Logging
    LOG_LEVEL: str = os.getenv('CRM_HARVEST_LOG_LEVEL', 'INFO')

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate configuration values.

        Returns:
            List of human-readable problems (empty when valid)
        """
        problems = []
        if cls.SETTLE_DELAY_SECONDS < 0:
            problems.append('CRM_HARVEST_SETTLE_DELAY_SECONDS must be >= 0')
        if cls.MERGE_MAX_ATTEMPTS < 1:
            problems.append('CRM_HARVEST_MERGE_MAX_ATTEMPTS must be >= 1')
        return problems


# Singleton config instance
config = Config()
