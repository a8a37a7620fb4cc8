"""Load environment variables from a .env file for local development."""

from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from campus_chat.utils.logger_config import get_logger

logger = get_logger(__name__)


def load_env(env_file: Optional[Union[str, Path]] = None) -> bool:
    """
    Load environment variables from a .env file if it exists.

    Variables already present in the process environment win over the file.

    Args:
        env_file: Path to the .env file (default: ".env" in the working directory)

    Returns:
        True if a file was found and loaded, False otherwise
    """
    env_path = Path(env_file) if env_file else Path.cwd() / ".env"

    if not env_path.exists():
        logger.debug(f"No .env file found at {env_path}")
        return False

    load_dotenv(env_path, override=False)
    logger.info(f"Environment variables loaded from {env_path}")
    return True
