from typing import Any

from pydantic import BaseModel, Field


class MediaFileResponse(BaseModel):
    id: str
    user_id: str
    name: str
    mime_type: str
    media_kind: str
    size: int
    uploaded_at: str
    tags: list[str]
    description: str
    analysis: dict[str, Any] | None = None

    model_config = {"from_attributes": True}


class TagsUpdate(BaseModel):
    user_id: str
    tags: list[str]


class CatalogAnalysis(BaseModel):
    """Analysis fields a client sends along with a file for search/recommendations."""

    description: str | None = None
    objects: list[str] = []
    colors: list[str] = []
    mood: str | None = None


class CatalogFile(BaseModel):
    id: str
    name: str = ""
    type: str = ""
    tags: list[str] = []
    uploaded_at: str | None = Field(default=None, alias="uploadedAt")
    ai_analysis: CatalogAnalysis | None = Field(default=None, alias="aiAnalysis")

    model_config = {"populate_by_name": True}


class SearchRequest(BaseModel):
    query: str = ""
    files: list[CatalogFile] | None = None
    user_id: str | None = None


class RecommendationRequest(BaseModel):
    file_id: str = ""
    files: list[CatalogFile] | None = None


class ScoredFile(BaseModel):
    id: str
    score: float
    reason: str
