from fastapi import Header, HTTPException, Request

from glowworm.config import settings
from glowworm.container import ServiceContainer


async def verify_api_key(x_api_key: str = Header(default="")) -> None:
    if not settings.api_key:
        return
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=403, detail="Invalid or missing API key")


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services
