from loguru import logger
import os

from app.core.config import ERROR_LOG_RETENTION, LOG_DIR, LOG_LEVEL, LOG_RETENTION, LOG_ROTATION

# Channel -> file. Modules pick a channel with logger.bind(log_type=...)
CHANNEL_FILES = {
    "booking": "bookings.log",  # creation + status transitions
    "payment": "payments.log",  # orders, callbacks, ledger writes
    "admin": "admin.log",       # admin commands on bookings
}

# Captured payments a human has to settle (stale bookings, second captures)
RECONCILIATION_FILE = "reconciliation.log"

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[log_type]: <7} | {message}"

os.makedirs(LOG_DIR, exist_ok=True)

logger.remove()
# Unbound records still render the channel column
logger.configure(extra={"log_type": "app"})


def _file(name):
    return os.path.join(LOG_DIR, name)


def _channel(name):
    return lambda record: record["extra"].get("log_type") == name


# Everything, all channels
logger.add(
    _file("app.log"),
    rotation=LOG_ROTATION,
    retention=LOG_RETENTION,
    level=LOG_LEVEL,
    enqueue=True,
    format=LOG_FORMAT,
)

for channel, filename in CHANNEL_FILES.items():
    logger.add(
        _file(filename),
        rotation=LOG_ROTATION,
        retention=LOG_RETENTION,
        level=LOG_LEVEL,
        enqueue=True,
        filter=_channel(channel),
        format=LOG_FORMAT,
    )

# Manual reconciliation queue, kept as long as errors
logger.add(
    _file(RECONCILIATION_FILE),
    rotation=LOG_ROTATION,
    retention=ERROR_LOG_RETENTION,
    level="WARNING",
    enqueue=True,
    filter=lambda record: record["extra"].get("manual_review", False),
    format=LOG_FORMAT + " | {extra}",
)

logger.add(
    _file("errors.log"),
    rotation=LOG_ROTATION,
    retention=ERROR_LOG_RETENTION,
    level="ERROR",
    enqueue=True,
    format=LOG_FORMAT,
    backtrace=True,
)


def get_logger():
    return logger


def get_review_logger(**context):
    """Logger for payments that need manual reconciliation.

    Records go to the admin channel and to ``reconciliation.log``; ``context``
    (booking id, payment refs) is appended to the reconciliation line.
    """
    return logger.bind(log_type="admin", manual_review=True, **context)
