"""Pydantic request/response schemas for ``POST /scrape``.

Field names follow the wire format (``usePlaywright``); the Python attribute
names stay snake_case via aliases.
"""

from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from adaptive_scraper.scraper.models import ScrapeResult


class ScrapeRequest(BaseModel):
    """Payload for a single scrape.

    Attributes:
        url: User-supplied URL text.  A missing scheme defaults to https.
        use_playwright: ``true`` or ``"auto"`` allow escalation to browser
            rendering; ``false`` restricts the request to the light fetch.
    """

    model_config = ConfigDict(populate_by_name=True)

    url: str
    use_playwright: Union[bool, Literal["auto"]] = Field(default="auto", alias="usePlaywright")


class DocumentData(BaseModel):
    title: str
    headings: List[str]
    links: List[str]
    text: str


class ScrapeSuccessResponse(BaseModel):
    """Body returned with HTTP 200."""

    success: Literal[True] = True
    engine: Literal["light", "rendered"]
    data: DocumentData

    @classmethod
    def from_result(cls, result: ScrapeResult) -> ScrapeSuccessResponse:
        return cls(
            engine=result.engine.value,
            data=DocumentData(**result.document.as_dict()),
        )


class ScrapeFailureResponse(BaseModel):
    """Body returned for every classified pipeline failure.

    ``classification`` is only present for ``blocked_by_protection``.
    """

    success: Literal[False] = False
    reason: str
    message: str
    classification: Optional[str] = None
