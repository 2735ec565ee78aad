"""Raw string to canonical absolute URL.

The input is first parsed as-is; when that does not yield an absolute
``http``/``https`` URL and the input names no scheme of its own, the parse
is retried once with ``https://`` prepended (so ``example.com/page``
works).  Anything still unparseable
raises :class:`~adaptive_scraper.core.exceptions.InvalidURLError`.

Whitespace is fatal only in the scheme or host; inside the path, query or
userinfo it is percent-encoded like any other unsafe character.

The canonical form is a fixed point: normalizing an already-normalized URL
returns the same string.
"""

from __future__ import annotations

import ipaddress
import logging
import re
import urllib.parse

from adaptive_scraper.core.exceptions import InvalidURLError
from adaptive_scraper.scraper.models import NormalizedURL

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES: frozenset[str] = frozenset({"http", "https"})
_DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

#: ASCII host after IDNA encoding: dot-separated labels, optional trailing dot.
_HOST_RE = re.compile(r"^(?=.{1,253}\.?$)[a-z0-9_](?:[a-z0-9_-]{0,61}[a-z0-9_])?"
                      r"(?:\.[a-z0-9_](?:[a-z0-9_-]{0,61}[a-z0-9_])?)*\.?$")

# '%' is safe so existing escapes are kept and quoting stays idempotent.
_PATH_SAFE = "/%:@!$&'()*+,;=-._~"
_QUERY_SAFE = "/?%:@!$&'()*+,;=-._~"


def _canonical_host(hostname: str) -> str | None:
    """Return the lower-cased ASCII host, or ``None`` if it is not valid."""
    if ":" in hostname:
        try:
            return f"[{ipaddress.IPv6Address(hostname).compressed}]"
        except ValueError:
            return None
    try:
        ascii_host = hostname.encode("idna").decode("ascii").lower()
    except UnicodeError:
        return None
    if not _HOST_RE.match(ascii_host):
        return None
    return ascii_host


def _try_parse(candidate: str) -> NormalizedURL | None:
    """Parse ``candidate`` as an absolute http(s) URL, or return ``None``."""
    try:
        parts = urllib.parse.urlsplit(candidate)
        port = parts.port
    except ValueError:
        return None

    scheme = parts.scheme.lower()
    if scheme not in _ALLOWED_SCHEMES or not parts.netloc or not parts.hostname:
        return None

    host = _canonical_host(parts.hostname)
    if host is None:
        return None

    netloc = host
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{port}"
    origin = f"{scheme}://{netloc}"

    if parts.username is not None:
        userinfo = urllib.parse.quote(parts.username, safe="%!$&'()*+,;=-._~")
        if parts.password is not None:
            userinfo += ":" + urllib.parse.quote(parts.password, safe="%!$&'()*+,;=-._~")
        netloc = f"{userinfo}@{netloc}"

    path = urllib.parse.quote(parts.path or "/", safe=_PATH_SAFE)
    if not path.startswith("/"):
        path = "/" + path
    query = urllib.parse.quote(parts.query, safe=_QUERY_SAFE)

    url = urllib.parse.urlunsplit((scheme, netloc, path, query, ""))
    return NormalizedURL(url=url, origin=origin, path=path, query=query)


def normalize_url(raw: str) -> NormalizedURL:
    """Turn an arbitrary string into a canonical absolute URL.

    Args:
        raw: User-supplied URL text (leading/trailing whitespace ignored).

    Returns:
        A :class:`~adaptive_scraper.scraper.models.NormalizedURL`.

    Raises:
        InvalidURLError: If neither ``raw`` nor ``"https://" + raw`` parses
            as an absolute ``http``/``https`` URL.
    """
    candidate = (raw or "").strip()
    if candidate:
        # An explicit "scheme://" is never second-guessed.
        attempts = (candidate,) if "://" in candidate else (candidate, f"https://{candidate}")
        for attempt in attempts:
            normalized = _try_parse(attempt)
            if normalized is not None:
                logger.debug("scraper: normalized %r -> %s", raw, normalized.url)
                return normalized

    raise InvalidURLError(f"'{raw}' is not a valid http(s) URL")
