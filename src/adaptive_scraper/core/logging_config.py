"""structlog setup for the scraper service.

``configure_logging()`` is called by ``api/main.py``.  Afterwards both
``logging.getLogger(__name__)`` (scraper stages) and
``structlog.get_logger(__name__)`` (API layer, pipeline) render through the
same processor chain: JSON lines normally, a coloured console at DEBUG.

Two scrubbing steps run before rendering:

* values under credential-like keys (``authorization``, ``cookie``,
  ``token``, ``secret``, ``password``) become ``[REDACTED]``, also one
  level down inside ``headers``-style dicts;
* URL fields (``url``, ``final_url``, ``target``...) lose any
  ``user:password@`` part, since target URLs are caller-supplied and are
  passed through to the fetchers unchanged.
"""

from __future__ import annotations

import logging
import sys
import urllib.parse
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

REDACTED = "[REDACTED]"

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

_CREDENTIAL_MARKERS = ("authorization", "cookie", "token", "secret", "password")
_URL_KEYS = frozenset({"url", "final_url", "target", "raw_url", "origin", "robots_url"})
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "asyncio", "playwright")


def _is_credential_key(key: Any) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in _CREDENTIAL_MARKERS)


def _strip_userinfo(value: str) -> str:
    try:
        parts = urllib.parse.urlsplit(value)
    except ValueError:
        return value
    if "@" not in parts.netloc:
        return value
    host = parts.netloc.rpartition("@")[2]
    return urllib.parse.urlunsplit(parts._replace(netloc=f"{REDACTED}@{host}"))


def scrub_event(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Redact credential-bearing keys and userinfo embedded in URL fields."""
    for key, value in list(event_dict.items()):
        if _is_credential_key(key):
            event_dict[key] = REDACTED
        elif key in _URL_KEYS and isinstance(value, str):
            event_dict[key] = _strip_userinfo(value)
        elif isinstance(value, dict):
            event_dict[key] = {
                k: (REDACTED if _is_credential_key(k) else v) for k, v in value.items()
            }
    return event_dict


def add_request_id(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    # Stdlib records never see bound contextvars, so fall back to the ContextVar.
    rid = request_id_var.get()
    if rid is not None:
        event_dict.setdefault("request_id", rid)
    return event_dict


def configure_logging(log_level: str = "INFO") -> None:
    """(Re)configure the root handler and structlog for ``log_level``.

    Safe to call repeatedly; the root logger always ends up with exactly
    one handler.
    """
    level_name = log_level.upper()
    console = level_name == "DEBUG"

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_request_id,
        scrub_event,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    renderer: Processor = (
        structlog.dev.ConsoleRenderer(colors=True)
        if console
        else structlog.processors.JSONRenderer()
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level_name, logging.INFO))

    quiet_level = logging.NOTSET if console else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
