import logging
import os

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def setup(env_file: str | None = None) -> None:
    """
    Load environment variables from a .env file.

    Args:
        env_file: Optional path to the .env file. Defaults to PROJECT_CHAT_ENV_FILE or ./.env
    """
    path = env_file or os.getenv("PROJECT_CHAT_ENV_FILE")
    loaded = load_dotenv(dotenv_path=path, override=False)
    if loaded:
        logger.info(f"Loaded environment from {path or '.env'}")
