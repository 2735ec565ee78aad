"""Bot-protection detection.

All signatures live in one ordered table, :data:`BLOCK_SIGNATURES`.  Each
entry names where to look (a response header or the body), what to look
for, and the verdict to return.  The table is scanned top to bottom and the
first matching entry wins, so vendor-specific signatures sit above the
generic ``access denied`` catch-all: a vendor challenge page often contains
generic denial wording too.

Matching is case-insensitive substring search.  :func:`detect_block` is a
pure function and is evaluated afresh for every fetch attempt.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass

from adaptive_scraper.scraper.models import BlockVerdict


class SignatureScope(str, enum.Enum):
    HEADER = "header"
    BODY = "body"


@dataclass(frozen=True)
class BlockSignature:
    """One detection rule.

    Attributes:
        scope: Where to look.
        pattern: Lower-case substring to find.  For header rules this is
            matched against the header value; an empty pattern matches the
            mere presence of the header.
        verdict: Classification returned on match.
        header: Lower-case header name (header rules only).
    """

    scope: SignatureScope
    pattern: str
    verdict: BlockVerdict
    header: str | None = None


_H = SignatureScope.HEADER
_B = SignatureScope.BODY

BLOCK_SIGNATURES: tuple[BlockSignature, ...] = (
    # --- Cloudflare: challenge-specific headers --------------------------
    BlockSignature(_H, "challenge", BlockVerdict.CLOUDFLARE, header="cf-mitigated"),
    BlockSignature(_H, "", BlockVerdict.CLOUDFLARE, header="cf-chl-bypass"),
    # --- Cloudflare: interstitial page markup ----------------------------
    BlockSignature(_B, "cf-browser-verification", BlockVerdict.CLOUDFLARE),
    BlockSignature(_B, "_cf_chl_opt", BlockVerdict.CLOUDFLARE),
    BlockSignature(_B, "cf-chl-bypass", BlockVerdict.CLOUDFLARE),
    BlockSignature(_B, "challenges.cloudflare.com", BlockVerdict.CLOUDFLARE),
    BlockSignature(_B, "cdn-cgi/challenge-platform", BlockVerdict.CLOUDFLARE),
    BlockSignature(_B, "challenge-form", BlockVerdict.CLOUDFLARE),
    BlockSignature(_B, "attention required! | cloudflare", BlockVerdict.CLOUDFLARE),
    BlockSignature(_B, "checking your browser before accessing", BlockVerdict.CLOUDFLARE),
    BlockSignature(_B, "verify you are human", BlockVerdict.CLOUDFLARE),
    # --- CAPTCHA prompts -------------------------------------------------
    BlockSignature(_B, "g-recaptcha", BlockVerdict.CAPTCHA),
    BlockSignature(_B, "h-captcha", BlockVerdict.CAPTCHA),
    BlockSignature(_B, "px-captcha", BlockVerdict.CAPTCHA),
    BlockSignature(_B, "captcha", BlockVerdict.CAPTCHA),
    # --- Generic interstitials -------------------------------------------
    BlockSignature(_B, "verify you're human", BlockVerdict.GENERIC_CHALLENGE),
    BlockSignature(_B, "are you a robot", BlockVerdict.GENERIC_CHALLENGE),
    BlockSignature(_B, "unusual traffic from your computer", BlockVerdict.GENERIC_CHALLENGE),
    BlockSignature(_B, "pardon our interruption", BlockVerdict.GENERIC_CHALLENGE),
    BlockSignature(_B, "please enable js and disable any ad blocker", BlockVerdict.GENERIC_CHALLENGE),
    BlockSignature(_B, "please wait while we verify", BlockVerdict.GENERIC_CHALLENGE),
    BlockSignature(_B, "your connection needs to be verified", BlockVerdict.GENERIC_CHALLENGE),
    # --- Catch-all -------------------------------------------------------
    BlockSignature(_B, "access denied", BlockVerdict.ACCESS_DENIED),
    BlockSignature(_B, "you don't have permission to access", BlockVerdict.ACCESS_DENIED),
)


def _lower_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {str(name).lower(): str(value).lower() for name, value in headers.items()}


def detect_block(
    body: str | None,
    headers: Mapping[str, str] | None = None,
    *,
    signatures: tuple[BlockSignature, ...] = BLOCK_SIGNATURES,
) -> BlockVerdict:
    """Classify a fetched response as clean or bot-protected.

    Args:
        body: Response body text (``None`` is treated as empty).
        headers: Optional response headers; names compared case-insensitively.
        signatures: Rule table to evaluate, in priority order.

    Returns:
        The verdict of the first matching signature, or
        :attr:`BlockVerdict.NONE` if nothing matches.
    """
    body_lower = (body or "").lower()
    header_map = _lower_headers(headers)

    for signature in signatures:
        if signature.scope is SignatureScope.HEADER:
            value = header_map.get(signature.header or "")
            if value is not None and signature.pattern in value:
                return signature.verdict
        elif signature.pattern in body_lower:
            return signature.verdict
    return BlockVerdict.NONE
