"""Load environment variables from a .env file for local development."""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from src.utils.logger_config import get_logger

logger = get_logger(__name__)


def load_env(env_file: Optional[Path] = None) -> bool:
    """Load environment variables from .env if it exists.

    Returns:
        True if a file was found and loaded
    """
    env_file = Path(env_file) if env_file else Path.cwd() / '.env'

    if not env_file.exists():
        logger.debug(f"No .env file found at {env_file}")
        return False

    load_dotenv(env_file)
    logger.info(f"Environment variables loaded from {env_file}")
    return True
