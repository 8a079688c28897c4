import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional

from wholesale_pos.core.config import settings

_RESERVED = {
    "args", "asctime", "created", "exc_info", "exc_text", "filename", "levelno",
    "lineno", "message", "module", "msecs", "funcName", "msg", "pathname",
    "process", "processName", "relativeCreated", "stack_info", "thread",
    "threadName", "levelname", "taskName",
}


class JsonFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        return datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()

    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
        }
        # extra= fields
        for attr, value in record.__dict__.items():
            if attr not in _RESERVED and attr not in log_record and attr != "name":
                log_record[attr] = value
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def setup_logger(name: str = "wholesale_pos", level: Optional[str] = None, log_file: Optional[str] = None):
    """JSON logs to stderr and, when ``log_file`` is set, to a rotating file.

    Calling it twice does not duplicate handlers.
    """
    logger = logging.getLogger(name)
    logger.setLevel((level or settings.log_level).upper())
    if getattr(logger, "_wholesale_configured", False):
        return logger

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(JsonFormatter())
    logger.addHandler(stream_handler)

    log_file = log_file or settings.log_file
    if log_file:
        rotating_handler = RotatingFileHandler(log_file, maxBytes=2 * 1024 * 1024, backupCount=10)
        rotating_handler.setFormatter(JsonFormatter())
        logger.addHandler(rotating_handler)

    logger._wholesale_configured = True
    return logger
