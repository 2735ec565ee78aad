"""Value types passed between pipeline stages.

Every instance is created and consumed within a single scrape request.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Union


# ---------------------------------------------------------------------------
# URL
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NormalizedURL:
    """Canonical absolute ``http``/``https`` URL.

    Attributes:
        url: The canonical URL string.
        origin: ``scheme://host[:port]``, the scope of the crawl policy.
        path: Path component, always starting with ``/``.
        query: Query string without the leading ``?`` (may be empty).
    """

    url: str
    origin: str
    path: str = "/"
    query: str = ""

    @property
    def robots_url(self) -> str:
        return f"{self.origin}/robots.txt"

    @property
    def path_with_query(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path

    def __str__(self) -> str:
        return self.url


# ---------------------------------------------------------------------------
# robots.txt
# ---------------------------------------------------------------------------


class RobotsBasis(str, enum.Enum):
    """Why a :class:`RobotsDecision` came out the way it did."""

    NO_POLICY_FILE = "no_policy_file"
    EXPLICIT_ALLOW = "explicit_allow"
    EXPLICIT_DISALLOW = "explicit_disallow"
    EVALUATION_FAILED = "evaluation_failed"


@dataclass(frozen=True)
class RobotsDecision:
    """Outcome of the robots.txt check for one URL.

    Attributes:
        allowed: Whether the URL may be fetched.
        basis: What the decision rests on.
        rule: The ``Allow``/``Disallow`` pattern that decided, if any.
    """

    allowed: bool
    basis: RobotsBasis
    rule: str | None = None


# ---------------------------------------------------------------------------
# Block detection
# ---------------------------------------------------------------------------


class BlockVerdict(str, enum.Enum):
    """Bot-protection classification of one fetched response."""

    NONE = "none"
    CLOUDFLARE = "cloudflare"
    CAPTCHA = "captcha"
    ACCESS_DENIED = "access-denied"
    GENERIC_CHALLENGE = "generic-challenge"

    @property
    def is_blocked(self) -> bool:
        return self is not BlockVerdict.NONE


# ---------------------------------------------------------------------------
# Fetch outcome
# ---------------------------------------------------------------------------


class FailureKind(str, enum.Enum):
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    BLOCKED_PROTECTION = "blocked_protection"


@dataclass
class FetchSuccess:
    """A fetched HTML body.

    Attributes:
        html: Response body (light) or serialized DOM (rendered).
        headers: Response headers; keys compared case-insensitively downstream.
        final_url: URL after redirects, used as the base for link resolution.
        status_code: HTTP status of the final response, if known.
    """

    html: str
    headers: Mapping[str, str] = field(default_factory=dict)
    final_url: str = ""
    status_code: int | None = None

    ok = True


@dataclass
class FetchFailure:
    """A failed fetch attempt.

    Attributes:
        kind: Failure category.
        message: Human-readable description.
        verdict: Block classification when ``kind`` is ``BLOCKED_PROTECTION``.
    """

    kind: FailureKind
    message: str
    verdict: BlockVerdict = BlockVerdict.NONE

    ok = False


FetchOutcome = Union[FetchSuccess, FetchFailure]


# ---------------------------------------------------------------------------
# Extraction and result
# ---------------------------------------------------------------------------


@dataclass
class ExtractedDocument:
    """Structured content of one HTML page.

    Attributes:
        title: Trimmed text of the first ``<title>``, or ``""``.
        headings: Trimmed h1–h4 texts in document order.
        links: Absolute ``href`` URLs in document order, duplicates kept.
        text: Non-empty paragraph texts joined by a blank line.
    """

    title: str = ""
    headings: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    text: str = ""

    def as_dict(self) -> dict[str, object]:
        return {
            "title": self.title,
            "headings": list(self.headings),
            "links": list(self.links),
            "text": self.text,
        }


class Engine(str, enum.Enum):
    """Which fetch tier produced the returned document."""

    LIGHT = "light"
    RENDERED = "rendered"


@dataclass
class ScrapeResult:
    """Successful pipeline outcome.

    Attributes:
        engine: Fetch tier that produced ``document``.
        url: The normalized request URL.
        document: Extracted content.
        escalated: ``True`` if the light path was abandoned for rendering.
        escalation_cause: Why escalation happened (``"fetch_failed"``,
            ``"blocked:<verdict>"``, ``"insufficient_text"``), or ``None``.
    """

    engine: Engine
    url: str
    document: ExtractedDocument
    escalated: bool = False
    escalation_cause: str | None = None
