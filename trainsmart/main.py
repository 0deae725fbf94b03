"""Main entry point for the TrainSmart API"""
import logging
import uvicorn

from trainsmart.config import validate_config, LOG_LEVEL, API_HOST, API_PORT
from trainsmart.observability.sentry_config import init_sentry
from trainsmart.api.server import create_api_application

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)


def main() -> None:
    """Main application entry point"""
    # Validate configuration
    logger.info("Validating configuration...")
    validate_config()

    init_sentry()

    app = create_api_application()

    logger.info(f"API listening on {API_HOST}:{API_PORT}")
    uvicorn.run(app, host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower())

    logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
