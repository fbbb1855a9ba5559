from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


NOT_AVAILABLE = "N/A"


class SearchRequest(BaseModel):
    query: Optional[str] = None

    model_config = {"extra": "ignore"}


class DetailsRequest(BaseModel):
    id: Optional[str] = None
    source: Optional[str] = None

    model_config = {"extra": "ignore"}


class RouteDecision(BaseModel):
    source: Optional[str] = None
    keywords: Optional[str] = None

    @field_validator("source", "keywords", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    def is_complete(self) -> bool:
        return bool(self.source) and bool(self.keywords)

    @classmethod
    def failed(cls) -> "RouteDecision":
        return cls(source=None, keywords=None)


class NormalizedResult(BaseModel):
    id: str = NOT_AVAILABLE
    title: str = NOT_AVAILABLE
    source: str = NOT_AVAILABLE
    author: str = NOT_AVAILABLE
    url: str = NOT_AVAILABLE
    lastUpdated: str = NOT_AVAILABLE
    tags: List[str] = Field(default_factory=list)

    @field_validator("id", "title", "source", "author", "url", "lastUpdated", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        # The UI renders every field unconditionally.
        if value is None:
            return NOT_AVAILABLE
        return str(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> List[str]:
        if value is None:
            return []
        return [str(tag) for tag in value if tag is not None]


class SearchResponse(BaseModel):
    source: str
    results: List[NormalizedResult] = Field(default_factory=list)


DatasetDetails = Dict[str, Any]
CatalogItem = Dict[str, Any]
