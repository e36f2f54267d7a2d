# tripshare/core/logging.py
import logging
from tripshare.core.config import settings # Import settings to use ENVIRONMENT

# Level based on environment, defaulting to INFO
log_level = logging.INFO
if settings.ENVIRONMENT == "development":
    log_level = logging.DEBUG
elif settings.ENVIRONMENT == "test":
    log_level = logging.DEBUG # Often useful to see DEBUG logs in tests
else:
     log_level = logging.INFO # Production/Staging default to INFO

# Check if handlers already exist to avoid re-configuring in environments that might reload
if not logging.root.handlers:
    logging.basicConfig(level=log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# httpx logs every request line at INFO; keep it quiet unless debugging
logging.getLogger("httpx").setLevel(logging.WARNING if log_level > logging.DEBUG else logging.DEBUG)

logger = logging.getLogger(__name__)
logger.debug("Core logging configured.")

def get_logger(name: str):
    """Helper to get a logger instance for a specific module."""
    return logging.getLogger(name)
