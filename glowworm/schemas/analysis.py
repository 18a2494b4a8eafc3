from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"

    @classmethod
    def from_mime(cls, mime_type: str) -> "MediaKind":
        prefix = (mime_type or "").split("/", 1)[0].lower()
        for kind in (cls.IMAGE, cls.VIDEO, cls.AUDIO):
            if prefix == kind.value:
                return kind
        return cls.DOCUMENT


class Complexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"
    ENTERPRISE = "enterprise"


class ProcessingMethod(str, Enum):
    LOCAL = "local"
    SANDBOX = "sandbox"


class MediaDescriptor(BaseModel):
    """An uploaded file as seen by the analysis pipeline."""

    model_config = ConfigDict(frozen=True)

    name: str
    size: int = Field(ge=0)
    mime_type: str = ""

    @property
    def media_kind(self) -> MediaKind:
        return MediaKind.from_mime(self.mime_type)

    @property
    def subtype(self) -> str:
        """The part of the MIME type after the slash, e.g. ``png``."""
        _, _, sub = self.mime_type.partition("/")
        return sub

    @property
    def size_mb(self) -> float:
        return self.size / (1024 * 1024)


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    objects: list[str] = []
    colors: list[str] = []
    mood: str = "neutral"
    confidence: float = Field(ge=0.0, le=1.0)
    tags: list[str] = Field(default=[], max_length=10)


class ResourceUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    memory: str = "unknown"
    cpu: str = "unknown"
    storage: str = "unknown"


class EnhancedAnalysisResult(AnalysisResult):
    processing_method: ProcessingMethod
    processing_time: int = Field(ge=0, description="milliseconds")
    complexity: Complexity
    sandbox_id: str | None = None
    resource_usage: ResourceUsage | None = None
