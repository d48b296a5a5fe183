import uvicorn
from constants import HOST, PORT, LOG_LEVEL, LOG_FILE, IS_PRODUCTION
from logging_config import setup_logging

# Setup logging before importing app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

from app import app
from logging_config import get_logger

logger = get_logger(__name__)

if __name__ == "__main__":
    logger.info(f"Starting signaling server at ws://{HOST}:{PORT}")
    uvicorn.run("app:app", host=HOST, port=PORT, reload=not IS_PRODUCTION, log_config=None)
