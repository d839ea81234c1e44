import inspect
import json
import logging
import os
import sys
import threading
from typing import Any

from loguru import logger


class InterceptHandler(logging.Handler):

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists.
        level: str | int
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        # Find caller from where originated the logged message.
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def structured_formatter(record: dict[str, Any]) -> str:
    """
    Convert log record to JSON string with scm_context, caller, status, latency_ms fields.

    Extra context is bound at the call site, e.g.
    logger.bind(scm_context=..., caller=..., status=..., latency_ms=...).
    """
    log_data = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "file": record["file"].name,
        "line": record["line"],
    }

    extra = record.get("extra", {})
    if "scm_context" in extra:
        log_data["scm_context"] = str(extra["scm_context"])
    if "caller" in extra:
        log_data["caller"] = str(extra["caller"])
    if "status" in extra:
        log_data["status"] = extra["status"]
    if "latency_ms" in extra:
        log_data["latency_ms"] = int(extra["latency_ms"])

    # loguru treats the returned string as a format template
    return json.dumps(log_data).replace("{", "{{").replace("}", "}}") + "\n"


def scm_logger(scm_context: str, caller: str | None = None):
    """Logger bound with the provider context picked up by structured_formatter."""
    if caller is None:
        return logger.bind(scm_context=scm_context)
    return logger.bind(scm_context=scm_context, caller=caller)


lock = threading.Lock()


def stop_logging() -> None:
    models = ["httpcore", "hpack", "asyncio"]
    for model in models:
        logger.disable(model)


def setup_logging(log_file: str | None = None, level: str | None = None):
    with lock:
        logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

        # remove every other logger's handlers
        # and propagate to root logger
        for name in logging.root.manager.loggerDict.keys():
            logging.getLogger(name).handlers = []
            logging.getLogger(name).propagate = True
        logger.remove()  # Will remove all handlers already configured

        stop_logging()

        # Console output with human-readable format
        logger.add(
            sink=sys.stdout,
            level=level or os.getenv("LOG_LEVEL", "INFO"),
            format="<white>{time:YYYY-MM-DD HH:mm:ss}</white>"
            " | <level>{level: <8}</level>"
            " | <cyan><b>{line}</b></cyan>"
            " - <white><b>{message}</b></white>",
        )

        # File output with structured JSON format
        logger.add(
            sink=log_file or os.getenv("LOG_FILE", "./logs/app.log"),
            format=structured_formatter,
            level="DEBUG",
            rotation="10 MB",
            retention="10 days",
            compression="zip",
        )
