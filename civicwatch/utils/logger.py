"""Rotating application log for request, authorization and notification events."""
import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(module)s:%(lineno)d | %(message)s"
_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Render ``extra=`` fields as sorted ``key=value`` pairs after the message."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = {key: value for key, value in vars(record).items() if key not in _RECORD_FIELDS}
        if not context:
            return line
        return line + " | " + " ".join(f"{key}={context[key]}" for key in sorted(context))


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(ContextFormatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    return handler


def init_logging(app) -> logging.Logger:
    log_dir = app.config.get("LOG_DIR") or os.path.join(app.instance_path, "logs")
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, "civicwatch.log")
    level = getattr(logging, (app.config.get("LOG_LEVEL") or "INFO").upper(), logging.INFO)

    logger = logging.getLogger(app.name)
    # Re-running the factory (tests, reloader) must not stack handlers.
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    logger.setLevel(level)
    logger.addHandler(
        _handler(
            RotatingFileHandler(
                log_path,
                maxBytes=int(app.config.get("LOG_MAX_BYTES", 5_000_000)),
                backupCount=int(app.config.get("LOG_BACKUP_COUNT", 5)),
                encoding="utf-8",
            ),
            level,
        )
    )
    logger.addHandler(_handler(logging.StreamHandler(), level))
    logger.propagate = False

    logger.info("Logging initialized", extra={"log_path": log_path})
    return logger
