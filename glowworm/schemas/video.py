from pydantic import BaseModel


class VideoGenerationRequest(BaseModel):
    prompt: str = ""
    aspect_ratio: str = "16:9"
    loop: bool = False


class VideoGeneration(BaseModel):
    id: str
    state: str
    video_url: str | None = None
    thumbnail_url: str | None = None
    prompt: str | None = None
