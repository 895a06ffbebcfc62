"""
Process-wide logging setup.

Modules log through `logging.getLogger(__name__)`; this only installs the
stdout handler so Gunicorn / Railway capture everything in one stream.
"""
import logging
import sys

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())
    if any(getattr(h, "_pulse_handler", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._pulse_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
