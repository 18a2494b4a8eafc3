import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

from glowworm.config import settings
from glowworm.container import build_container
from glowworm.database import create_tables, async_session
from glowworm.dependencies import verify_api_key
from glowworm.seed import seed_data
from glowworm.routers.analysis import router as analysis_router
from glowworm.routers.auth import router as auth_router
from glowworm.routers.discovery import router as discovery_router
from glowworm.routers.files import router as files_router
from glowworm.routers.videos import router as videos_router
from glowworm.utils.exceptions import register_exception_handlers

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

SERVICE_NAME = "glowworm-studio-api"
VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.services = build_container(settings)
    await create_tables()
    async with async_session() as session:
        await seed_data(session)
    try:
        yield
    finally:
        await app.state.services.aclose()


app = FastAPI(
    title="Glow Worm Studio API",
    description="Media upload, AI tagging and video generation",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

_api_key_dep = [Depends(verify_api_key)]

app.include_router(auth_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(files_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(analysis_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(videos_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(discovery_router, prefix="/api/v1", dependencies=_api_key_dep)


@app.get("/health")
async def health_check():
    return {"success": True, "service": SERVICE_NAME, "version": VERSION}
