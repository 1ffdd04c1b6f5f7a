"""Process-wide logging setup with request-id propagation."""

import logging
from contextvars import ContextVar

from issuance.core.config import settings

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Stamp every record with the id of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the ``issuance`` logger tree."""
    root = logging.getLogger("issuance")
    root.setLevel((level or settings.LOG_LEVEL).upper())

    for handler in root.handlers:
        if getattr(handler, "_issuance_handler", False):
            return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    handler._issuance_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
