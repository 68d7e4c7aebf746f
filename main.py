"""
Main entry point for the OFX converter application.

This module initializes the application, loads configuration,
and starts the FastAPI server.
"""
import sys
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).parent

# Load environment variables from .env file
_env_file = PROJECT_ROOT / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    print("Warning: .env file not found. Using environment variables or defaults.")

from core.config import get_settings
from core.exceptions import ConfigurationError
from core.logger import setup_logger

logger = setup_logger(__name__)


def main():
    """Main application entry point."""
    try:
        # Load and validate configuration
        settings = get_settings()
        if not settings.gemini_api_key:
            raise ConfigurationError(
                "API_KEY environment variable not set",
                details={"required_key": "API_KEY"}
            )

        import uvicorn
        from app.api import app

        logger.info("Starting AI OFX Converter")
        logger.info(f"Gemini Model: {settings.gemini_model}")
        logger.info(f"Log Level: {settings.log_level}")
        logger.info(f"Max Chunk Size: {settings.max_chunk_size:,} chars")
        logger.info(f"Max Retries: {settings.max_retries}")
        logger.info(f"Account: {settings.bank_id}/{settings.account_id} ({settings.currency})")

        logger.info(f"Starting server on {settings.host}:{settings.port}")

        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower()
        )

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        if e.details:
            logger.error(f"Details: {e.details}")
        sys.exit(1)

    except Exception as e:
        logger.error(f"Failed to start application: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
