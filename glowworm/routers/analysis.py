from fastapi import APIRouter, Depends, File, Form, UploadFile

from glowworm.container import ServiceContainer
from glowworm.dependencies import get_services
from glowworm.schemas.analysis import AnalysisResult, MediaDescriptor, MediaKind
from glowworm.services.analysis import basic_video_analysis
from glowworm.services.batch import BatchItem
from glowworm.services.outcome import Degraded, outcome_label
from glowworm.services.tags import dedupe_tags
from glowworm.utils.exceptions import AppException
from glowworm.utils.response import success_response

router = APIRouter(prefix="/analyze", tags=["analysis"])

ANONYMOUS_USER = "anonymous"


async def _read_upload(file: UploadFile | None, max_size: int) -> tuple[bytes, MediaDescriptor]:
    if file is None:
        raise AppException("No file provided", status_code=400)
    content = await file.read()
    if len(content) > max_size:
        raise AppException("File too large", status_code=413)
    descriptor = MediaDescriptor(
        name=file.filename or "upload",
        size=len(content),
        mime_type=file.content_type or "application/octet-stream",
    )
    return content, descriptor


def _file_info(descriptor: MediaDescriptor) -> dict:
    return {"name": descriptor.name, "size": descriptor.size, "type": descriptor.mime_type}


@router.post("")
async def analyze_file(
    file: UploadFile | None = File(None),
    services: ServiceContainer = Depends(get_services),
):
    """Single-shot analysis without sandbox processing or persistence."""
    content, descriptor = await _read_upload(file, services.settings.max_upload_size_bytes)
    vision = services.analysis.vision

    if descriptor.media_kind is MediaKind.IMAGE:
        analysis = (await vision.analyze(content, descriptor.mime_type)).result
    elif descriptor.media_kind is MediaKind.VIDEO:
        analysis = basic_video_analysis(descriptor)
    else:
        analysis = AnalysisResult(
            description=f"File: {descriptor.name}",
            objects=["document", "file"],
            colors=["unknown"],
            mood="neutral",
            confidence=0.6,
            tags=["document", "uploaded"],
        )

    extra_tags = await vision.generate_tags(analysis)
    analysis = analysis.model_copy(update={"tags": dedupe_tags([*analysis.tags, *extra_tags])})
    return success_response(analysis=analysis.model_dump(), file_info=_file_info(descriptor))


@router.post("/enhanced")
async def analyze_enhanced(
    file: UploadFile | None = File(None),
    user_id: str = Form(ANONYMOUS_USER),
    services: ServiceContainer = Depends(get_services),
):
    content, descriptor = await _read_upload(file, services.settings.max_upload_size_bytes)
    outcome = await services.analysis.analyze(content, descriptor, user_id or ANONYMOUS_USER)
    result = outcome.result
    return success_response(
        analysis=result.model_dump(mode="json"),
        metadata={
            **_file_info(descriptor),
            "processing_method": result.processing_method.value,
            "complexity": result.complexity.value,
            "processing_time": result.processing_time,
            "outcome": outcome_label(outcome),
            "degraded_reason": outcome.reason if isinstance(outcome, Degraded) else None,
        },
    )


@router.get("/enhanced")
async def enhanced_info(services: ServiceContainer = Depends(get_services)):
    return {
        "status": "healthy",
        "service": "Enhanced media analysis",
        "sandbox_available": services.analysis.sandbox_available,
        "vision_available": services.analysis.vision.configured,
        "features": [
            "Automatic complexity detection",
            "Sandbox processing for video",
            "Resource usage monitoring",
            "Fallback to local processing",
            "Batch processing support",
        ],
    }


@router.post("/batch")
async def analyze_batch(
    files: list[UploadFile] | None = File(None),
    user_id: str = Form(ANONYMOUS_USER),
    services: ServiceContainer = Depends(get_services),
):
    if not files:
        raise AppException("No files provided", status_code=400)

    items = []
    for upload in files:
        content, descriptor = await _read_upload(upload, services.settings.max_upload_size_bytes)
        items.append(BatchItem(descriptor=descriptor, content=content))

    results = await services.batch.batch_analyze(items, user_id or ANONYMOUS_USER)
    return success_response(
        count=len(results),
        results=[
            {"file_info": _file_info(item.descriptor), "analysis": result.model_dump(mode="json")}
            for item, result in zip(items, results)
        ],
    )
