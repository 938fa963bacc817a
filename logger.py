import logging
import logging.handlers
import os
import json
from typing import Any, Dict

# Log file lives next to this module unless CONCERT_LOG_FILE points elsewhere
LOG_FILE = os.environ.get("CONCERT_LOG_FILE") or os.path.join(
    os.path.dirname(os.path.abspath(__file__)), 'concert.log'
)

MAX_BYTES = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 3

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    handlers=[
        logging.handlers.RotatingFileHandler(
            LOG_FILE, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding='utf-8'
        ),
        logging.StreamHandler()
    ]
)

# pyserial is chatty on DEBUG
logging.getLogger("serial").setLevel(logging.WARNING)


def set_log_level(level_name: str) -> None:
    """Apply a level name from config ('DEBUG', 'INFO', ...) to the root logger."""
    level = logging.getLevelName(str(level_name).upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.getLogger().setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name."""
    return logging.getLogger(name)


def log_json(logger: logging.Logger, level: int, payload: Dict[str, Any]) -> None:
    """
    Helper to emit one *single‑line* JSON object at the chosen log level.
    """
    logger.log(level, json.dumps(payload, separators=(",", ":")))
