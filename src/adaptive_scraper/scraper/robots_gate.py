"""robots.txt fetch and evaluation.

Only the wildcard (``User-agent: *``) group is consulted.  Rules are
evaluated with longest-match-wins semantics: the ``Allow``/``Disallow``
pattern with the most characters that matches the path decides, and an
``Allow`` wins a tie.  ``*`` matches any run of characters and a trailing
``$`` anchors the pattern to the end of the path.

Every failure mode is fail-open: a missing file, a network error, a timeout
or an unreadable body all yield ``allowed=True``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field

import httpx

from adaptive_scraper.scraper.config import (
    MAX_ROBOTS_BYTES,
    ROBOTS_NOT_FOUND_STATUSES,
    ROBOTS_USER_AGENT,
)
from adaptive_scraper.scraper.models import NormalizedURL, RobotsBasis, RobotsDecision

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


@dataclass
class _Group:
    agents: list[str] = field(default_factory=list)
    rules: list[tuple[bool, str]] = field(default_factory=list)


class RobotsRules:
    """Parsed ``Allow``/``Disallow`` rules for one user-agent token.

    Args:
        text: Raw robots.txt body.
        user_agent: Group to select; ``"*"`` selects the wildcard group(s).
    """

    def __init__(self, text: str, user_agent: str = ROBOTS_USER_AGENT) -> None:
        self.user_agent = user_agent.lower()
        self.rules: list[tuple[bool, str]] = []
        self._regex_cache: dict[str, re.Pattern[str]] = {}
        for group in self._parse(text):
            if self.user_agent in group.agents:
                self.rules.extend(group.rules)

    @staticmethod
    def _parse(text: str) -> list[_Group]:
        groups: list[_Group] = []
        current: _Group | None = None
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line or ":" not in line:
                continue
            key, _, value = line.partition(":")
            key = key.strip().lower()
            value = value.strip()
            if key == "user-agent":
                # Consecutive User-agent lines share one group.
                if current is None or current.rules:
                    current = _Group()
                    groups.append(current)
                current.agents.append(value.lower())
            elif key in ("allow", "disallow") and current is not None:
                if not value:
                    # Empty Disallow means "allow everything"; an empty
                    # Allow carries no information.
                    continue
                current.rules.append((key == "allow", value))
        return groups

    def _matches(self, pattern: str, path: str) -> bool:
        regex = self._regex_cache.get(pattern)
        if regex is None:
            anchored = pattern.endswith("$")
            body = pattern[:-1] if anchored else pattern
            expr = ".*".join(re.escape(part) for part in body.split("*"))
            regex = re.compile(expr + ("$" if anchored else ""), re.DOTALL)
            self._regex_cache[pattern] = regex
        return regex.match(path) is not None

    def evaluate(self, path: str) -> RobotsDecision:
        """Evaluate ``path`` (path plus optional query) against the rules."""
        best: tuple[bool, str] | None = None
        for allow, pattern in self.rules:
            if not self._matches(pattern, path):
                continue
            if (
                best is None
                or len(pattern) > len(best[1])
                or (len(pattern) == len(best[1]) and allow and not best[0])
            ):
                best = (allow, pattern)

        if best is None:
            return RobotsDecision(allowed=True, basis=RobotsBasis.EXPLICIT_ALLOW)
        allow, pattern = best
        basis = RobotsBasis.EXPLICIT_ALLOW if allow else RobotsBasis.EXPLICIT_DISALLOW
        return RobotsDecision(allowed=allow, basis=basis, rule=pattern)


# ---------------------------------------------------------------------------
# Public check
# ---------------------------------------------------------------------------


async def _download(
    robots_url: str,
    *,
    client: httpx.AsyncClient,
    timeout: float,
    user_agent: str,
) -> tuple[int, str]:
    """Return ``(status, body)``; the body is cut at :data:`MAX_ROBOTS_BYTES`."""
    async with client.stream(
        "GET",
        robots_url,
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": user_agent},
    ) as response:
        if not response.is_success:
            return response.status_code, ""

        chunks: list[bytes] = []
        received = 0
        async for chunk in response.aiter_bytes():
            chunks.append(chunk)
            received += len(chunk)
            if received >= MAX_ROBOTS_BYTES:
                logger.info("scraper: robots.txt at %s truncated to %d bytes", robots_url, MAX_ROBOTS_BYTES)
                break
        body = b"".join(chunks)[:MAX_ROBOTS_BYTES]
        return response.status_code, body.decode(response.charset_encoding or "utf-8", errors="replace")


async def check_robots(
    target: NormalizedURL,
    *,
    client: httpx.AsyncClient,
    timeout: float,
    user_agent: str,
) -> RobotsDecision:
    """Fetch the origin's robots.txt and decide whether ``target`` may be fetched.

    Makes exactly one outbound request and never retries.  Only the first
    :data:`~adaptive_scraper.scraper.config.MAX_ROBOTS_BYTES` of the body are
    read and evaluated.

    Args:
        target: The normalized URL to check.
        client: Shared :class:`httpx.AsyncClient` instance.
        timeout: Seconds allowed for the robots.txt request.
        user_agent: User-agent header sent with the request.

    Returns:
        A :class:`~adaptive_scraper.scraper.models.RobotsDecision`.
    """
    robots_url = target.robots_url
    try:
        status_code, text = await asyncio.wait_for(
            _download(robots_url, client=client, timeout=timeout, user_agent=user_agent),
            timeout=timeout,
        )
    except (httpx.HTTPError, asyncio.TimeoutError) as exc:
        logger.debug("scraper: robots.txt fetch failed for %s: %s, allowing", robots_url, exc)
        return RobotsDecision(allowed=True, basis=RobotsBasis.EVALUATION_FAILED)
    except LookupError as exc:
        logger.debug("scraper: unreadable robots.txt at %s: %s, allowing", robots_url, exc)
        return RobotsDecision(allowed=True, basis=RobotsBasis.EVALUATION_FAILED)

    if status_code in ROBOTS_NOT_FOUND_STATUSES:
        logger.debug("scraper: no robots.txt at %s (HTTP %d)", robots_url, status_code)
        return RobotsDecision(allowed=True, basis=RobotsBasis.NO_POLICY_FILE)
    if not 200 <= status_code < 300:
        logger.debug("scraper: robots.txt HTTP %d for %s, allowing", status_code, robots_url)
        return RobotsDecision(allowed=True, basis=RobotsBasis.EVALUATION_FAILED)

    decision = RobotsRules(text).evaluate(target.path_with_query)
    if not decision.allowed:
        logger.info("scraper: robots.txt disallows %s (rule %r)", target.url, decision.rule)
    return decision
