import logging
import os
from logging.handlers import TimedRotatingFileHandler


# ===========================================================================================================
# Logger Configuration
# ===========================================================================================================

BASE_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "../..")
)
LOG_DIR  = os.environ.get("GARDEN_IRRIGATION_LOG_DIR", os.path.join(BASE_DIR, "runtime", "logs"))
LOG_FILE = os.path.join(LOG_DIR, "garden_irrigation.log")

ROTATION_WHEN = 'midnight'  # Rotate logs at midnight
ROTATION_INTERVAL = 1      # Rotate every day
ROTATION_BACKUP_COUNT = 30  # Keep last 30 log files


# Ensure log directory exists
if not os.path.exists(LOG_DIR):
    os.makedirs(LOG_DIR, exist_ok=True)

# Formatter - common format for all handlers
formatter = logging.Formatter('%(asctime)s | %(name)s | %(levelname)s | %(message)s')


# Rotating File Handler - rotates logs daily, keeps 30 files
file_handler = TimedRotatingFileHandler(
    LOG_FILE,
    when=ROTATION_WHEN,
    interval=ROTATION_INTERVAL,
    backupCount=ROTATION_BACKUP_COUNT,
    encoding='utf-8',
    delay=True                          # Delay file creation until first log write
)

file_handler.setFormatter(formatter)
file_handler.setLevel(logging.DEBUG)  # Set file handler to log DEBUG and above

# Console Handler - logs WARNING and above to console
console_handler = logging.StreamHandler()
console_handler.setFormatter(formatter)
console_handler.setLevel(logging.WARNING)  # Set console handler to log WARNING and above


def get_logger(name: str) -> logging.Logger:
    """Returns a logger with the specified name, configured with the shared file and console handlers."""
    logger = logging.getLogger(name)
    if not logger.handlers:  # Prevent duplicate handlers
        logger.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)
        logger.addHandler(console_handler)
        logger.propagate = False  # Prevent log duplication up the hierarchy
    return logger


def set_log_level(level: str) -> None:
    """Applies the configured log level to the shared file handler. Console stays at WARNING or above."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    file_handler.setLevel(numeric_level)
    console_handler.setLevel(max(numeric_level, logging.WARNING))
