import logging
import os
import uuid as uuid_mod
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from glowworm.container import ServiceContainer
from glowworm.database import get_db
from glowworm.dependencies import get_services
from glowworm.models.media import MediaAnalysis, MediaFile
from glowworm.models.user import User
from glowworm.schemas.analysis import EnhancedAnalysisResult, MediaDescriptor
from glowworm.schemas.media import MediaFileResponse, TagsUpdate
from glowworm.services.outcome import Degraded, Success, outcome_label
from glowworm.services.tags import dedupe_tags
from glowworm.utils.exceptions import AppException
from glowworm.utils.response import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def analysis_payload(analysis: MediaAnalysis | None) -> dict | None:
    if analysis is None:
        return None
    return {
        "id": analysis.id,
        "created_at": analysis.created_at,
        "outcome": analysis.outcome,
        "degraded_reason": analysis.degraded_reason,
        "description": analysis.description,
        "objects": analysis.objects,
        "colors": analysis.colors,
        "mood": analysis.mood,
        "confidence": analysis.confidence,
        "tags": analysis.tags,
        "processing_method": analysis.processing_method,
        "processing_time": analysis.processing_time_ms,
        "complexity": analysis.complexity,
        "sandbox_id": analysis.sandbox_id,
        "resource_usage": analysis.resource_usage,
    }


def file_payload(media: MediaFile, analysis: MediaAnalysis | None) -> dict:
    data = MediaFileResponse.model_validate(media).model_dump()
    data["url"] = f"/api/v1/files/{media.id}/content"
    data["analysis"] = analysis_payload(analysis)
    return data


def _analysis_record(
    file_id: str,
    outcome: Success[EnhancedAnalysisResult] | Degraded[EnhancedAnalysisResult],
) -> MediaAnalysis:
    result = outcome.result
    return MediaAnalysis(
        id=str(uuid_mod.uuid4()),
        file_id=file_id,
        created_at=_now(),
        outcome=outcome_label(outcome),
        degraded_reason=outcome.reason if isinstance(outcome, Degraded) else None,
        description=result.description,
        objects=list(result.objects),
        colors=list(result.colors),
        mood=result.mood,
        confidence=result.confidence,
        tags=list(result.tags),
        processing_method=result.processing_method.value,
        processing_time_ms=result.processing_time,
        complexity=result.complexity.value,
        sandbox_id=result.sandbox_id,
        resource_usage=result.resource_usage.model_dump() if result.resource_usage else None,
    )


async def _latest_analysis(db: AsyncSession, file_id: str) -> MediaAnalysis | None:
    result = await db.execute(
        select(MediaAnalysis)
        .where(MediaAnalysis.file_id == file_id)
        .order_by(MediaAnalysis.created_at.desc())
        .limit(1)
    )
    return result.scalars().first()


async def _owned_file(db: AsyncSession, file_id: str, user_id: str) -> MediaFile:
    if not user_id:
        raise AppException("User ID required", status_code=400)
    media = await db.get(MediaFile, file_id)
    if media is None:
        raise AppException("File not found", status_code=404)
    if media.user_id != user_id:
        raise AppException("Unauthorized", status_code=403)
    return media


@router.post("", status_code=201)
async def upload_file(
    file: UploadFile | None = File(None),
    user_id: str = Form(""),
    analyze: bool = Form(True),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    if file is None:
        raise AppException("No file provided", status_code=400)
    if not user_id:
        raise AppException("User ID required", status_code=400)
    if await db.get(User, user_id) is None:
        raise AppException("User not found", status_code=404)

    content = await file.read()
    if len(content) > services.settings.max_upload_size_bytes:
        raise AppException("File too large", status_code=413)

    descriptor = MediaDescriptor(
        name=file.filename or "upload",
        size=len(content),
        mime_type=file.content_type or "application/octet-stream",
    )
    file_id = str(uuid_mod.uuid4())
    path = services.storage.save(user_id, file_id, descriptor.name, content)

    media = MediaFile(
        id=file_id,
        user_id=user_id,
        name=descriptor.name,
        mime_type=descriptor.mime_type,
        media_kind=descriptor.media_kind.value,
        size=descriptor.size,
        path=path,
        uploaded_at=_now(),
        tags=dedupe_tags([descriptor.subtype or "file", "uploaded"]),
        description="",
    )
    db.add(media)

    record = None
    try:
        if analyze:
            outcome = await services.analysis.analyze(content, descriptor, user_id)
            record = _analysis_record(file_id, outcome)
            db.add(record)
            media.tags = dedupe_tags([*outcome.result.tags, *media.tags])
            media.description = outcome.result.description
        await db.commit()
    except Exception:
        logger.exception("Upload of %s failed, removing stored bytes", file_id)
        await db.rollback()
        services.storage.delete(path)
        raise

    logger.info("Stored %s for user %s (%d bytes)", file_id, user_id, descriptor.size)
    return success_response(file=file_payload(media, record))


@router.get("")
async def list_files(user_id: str = Query(""), db: AsyncSession = Depends(get_db)):
    if not user_id:
        raise AppException("User ID required", status_code=400)

    result = await db.execute(
        select(MediaFile)
        .where(MediaFile.user_id == user_id)
        .order_by(MediaFile.uploaded_at.desc())
    )
    files = []
    for media in result.scalars().all():
        files.append(file_payload(media, await _latest_analysis(db, media.id)))
    return success_response(files=files)


@router.get("/{file_id}")
async def get_file(file_id: str, db: AsyncSession = Depends(get_db)):
    media = await db.get(MediaFile, file_id)
    if media is None:
        raise AppException("File not found", status_code=404)
    return success_response(file=file_payload(media, await _latest_analysis(db, file_id)))


@router.get("/{file_id}/content")
async def get_file_content(file_id: str, db: AsyncSession = Depends(get_db)):
    media = await db.get(MediaFile, file_id)
    if media is None:
        raise AppException("File not found", status_code=404)
    if not os.path.isfile(media.path):
        logger.warning("Stored bytes missing for %s at %s", file_id, media.path)
        raise AppException("File content not found", status_code=404)
    return FileResponse(media.path, media_type=media.mime_type, filename=media.name)


@router.put("/{file_id}/tags")
async def update_tags(file_id: str, payload: TagsUpdate, db: AsyncSession = Depends(get_db)):
    media = await _owned_file(db, file_id, payload.user_id)
    media.tags = dedupe_tags(payload.tags)
    await db.commit()
    return success_response(file=file_payload(media, await _latest_analysis(db, file_id)))


@router.delete("/{file_id}")
async def delete_file(
    file_id: str,
    user_id: str = Query(""),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    media = await _owned_file(db, file_id, user_id)

    try:
        services.storage.delete(media.path)
    except OSError as e:
        logger.warning("Storage deletion failed for %s: %s", file_id, e)

    analyses = await db.execute(select(MediaAnalysis).where(MediaAnalysis.file_id == file_id))
    for analysis in analyses.scalars().all():
        await db.delete(analysis)
    await db.delete(media)
    await db.commit()
    return success_response(message="File deleted successfully")
