"""Provider clients and services, built once per process at startup."""
import logging
import os
from dataclasses import dataclass

from openai import AsyncOpenAI

from glowworm.config import Settings
from glowworm.sandbox.orchestrator import SandboxOrchestrator
from glowworm.sandbox.provider import SandboxProvider
from glowworm.services.analysis import MediaAnalysisService
from glowworm.services.batch import BatchCoordinator
from glowworm.services.discovery import SearchService
from glowworm.services.storage import MediaStorage
from glowworm.services.video_generation import LumaClient
from glowworm.services.vision import VisionAnalyzer
from glowworm.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("openai_api_key", "daytona_api_key", "luma_api_key")


@dataclass
class ServiceContainer:
    settings: Settings
    openai_client: AsyncOpenAI | None
    sandbox_provider: SandboxProvider | None
    luma: LumaClient | None
    analysis: MediaAnalysisService
    batch: BatchCoordinator
    search: SearchService
    storage: MediaStorage

    def require_luma(self) -> LumaClient:
        if self.luma is None:
            raise ConfigurationError("Luma API key not configured")
        return self.luma

    async def aclose(self) -> None:
        if self.luma is not None:
            await self.luma.close()
        if self.sandbox_provider is not None:
            await self.sandbox_provider.close()
        if self.openai_client is not None:
            await self.openai_client.close()


def missing_credentials(settings: Settings) -> list[str]:
    return [key for key in REQUIRED_KEYS if not getattr(settings, key).strip()]


def build_openai_client(settings: Settings) -> AsyncOpenAI | None:
    if not settings.openai_api_key.strip():
        return None
    kwargs: dict = {"api_key": settings.openai_api_key, "timeout": settings.openai_timeout_seconds}
    if settings.openai_base_url:
        kwargs["base_url"] = settings.openai_base_url
    return AsyncOpenAI(**kwargs)


def build_sandbox_provider(settings: Settings) -> SandboxProvider | None:
    if not settings.daytona_api_key.strip():
        return None
    from glowworm.sandbox.daytona_provider import DaytonaSandboxProvider

    return DaytonaSandboxProvider.from_settings(settings)


def build_luma_client(settings: Settings) -> LumaClient | None:
    if not settings.luma_api_key.strip():
        return None
    return LumaClient.create(settings.luma_api_key, settings.luma_base_url, settings.luma_timeout_seconds)


def build_container(
    settings: Settings,
    *,
    openai_client: AsyncOpenAI | None = None,
    sandbox_provider: SandboxProvider | None = None,
    luma: LumaClient | None = None,
) -> ServiceContainer:
    """Validate credentials and wire every service.

    Missing credentials are logged; with ``strict_config`` they abort startup.
    Explicit clients passed in take precedence over the ones built from settings.
    """
    missing = missing_credentials(settings)
    if missing:
        if settings.strict_config:
            raise ConfigurationError(f"Missing configuration: {', '.join(missing)}")
        logger.warning("Not configured: %s", ", ".join(missing))

    openai_client = openai_client or build_openai_client(settings)
    sandbox_provider = sandbox_provider or build_sandbox_provider(settings)
    luma = luma or build_luma_client(settings)

    vision = VisionAnalyzer(openai_client, settings.openai_model, settings.openai_tag_model)
    orchestrator = None
    if sandbox_provider is not None:
        orchestrator = SandboxOrchestrator(
            sandbox_provider,
            credentials={
                "openai": settings.openai_api_key,
                "xai": settings.xai_api_key,
                "elevenlabs": settings.elevenlabs_api_key,
            },
            snapshot=settings.sandbox_snapshot,
            model_type=settings.openai_model,
            create_attempts=settings.sandbox_create_attempts,
            backoff_base_seconds=settings.sandbox_backoff_base_seconds,
        )
    analysis = MediaAnalysisService(vision, orchestrator)

    return ServiceContainer(
        settings=settings,
        openai_client=openai_client,
        sandbox_provider=sandbox_provider,
        luma=luma,
        analysis=analysis,
        batch=BatchCoordinator(analysis.analyze, batch_size=settings.batch_size),
        search=SearchService(openai_client, settings.openai_tag_model),
        storage=MediaStorage(os.path.join(settings.data_dir, "uploads")),
    )
