from fastapi import APIRouter, Depends

from glowworm.container import ServiceContainer
from glowworm.dependencies import get_services
from glowworm.schemas.media import RecommendationRequest, SearchRequest
from glowworm.services.discovery import recommend
from glowworm.utils.exceptions import AppException
from glowworm.utils.response import success_response

router = APIRouter(tags=["discovery"])


@router.post("/search")
async def search(payload: SearchRequest, services: ServiceContainer = Depends(get_services)):
    if not payload.query.strip() or payload.files is None:
        raise AppException("Query and files required", status_code=400)
    results = await services.search.search(payload.query, payload.files)
    return success_response(results=[r.model_dump() for r in results])


@router.post("/recommendations")
async def recommendations(payload: RecommendationRequest):
    if not payload.file_id or payload.files is None:
        raise AppException("File ID and files required", status_code=400)
    try:
        items = recommend(payload.file_id, payload.files)
    except LookupError:
        raise AppException("File not found", status_code=404)
    return success_response(recommendations=items)
