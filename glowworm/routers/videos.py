import logging

from fastapi import APIRouter, Depends

from glowworm.container import ServiceContainer
from glowworm.dependencies import get_services
from glowworm.schemas.video import VideoGenerationRequest
from glowworm.services.video_generation import VideoGenerationError
from glowworm.utils.exceptions import AppException
from glowworm.utils.response import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("/generate")
async def generate_video(payload: VideoGenerationRequest, services: ServiceContainer = Depends(get_services)):
    if not payload.prompt.strip():
        raise AppException("Prompt is required", status_code=400)
    luma = services.require_luma()

    try:
        generation = await luma.generate(payload.prompt, payload.aspect_ratio, payload.loop)
    except VideoGenerationError as e:
        raise AppException("Failed to generate video", status_code=e.status_code) from e

    return success_response(
        generation_id=generation.id,
        status=generation.state,
        message="Video generation started",
    )


@router.get("/{generation_id}")
async def check_video(generation_id: str, services: ServiceContainer = Depends(get_services)):
    luma = services.require_luma()

    try:
        generation = await luma.get(generation_id)
    except VideoGenerationError as e:
        raise AppException("Failed to check video status", status_code=e.status_code) from e

    return success_response(
        id=generation.id,
        status=generation.state,
        video_url=generation.video_url,
        thumbnail_url=generation.thumbnail_url,
        prompt=generation.prompt,
    )
