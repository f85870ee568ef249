# app/utils/logger.py
import logging
from pathlib import Path

from app.config import settings

# Create logs directory if it doesn't exist
LOGS_DIR = Path(settings.LOG_DIR)
LOGS_DIR.mkdir(parents=True, exist_ok=True)

# Log file path
LOG_FILE = LOGS_DIR / settings.LOG_FILE_NAME if settings.LOG_FILE_NAME else None

# Custom formatter
formatter = logging.Formatter(
    "%(asctime)s [%(levelname)s]: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
)

# Stream handler
stream_handler = logging.StreamHandler()
stream_handler.setFormatter(formatter)

# Configure logger
logger = logging.getLogger("classroom_backend")
logger.setLevel(settings.LOG_LEVEL.upper())
logger.addHandler(stream_handler)

# File handler
if LOG_FILE is not None:
    file_handler = logging.FileHandler(LOG_FILE)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
