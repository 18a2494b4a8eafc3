"""Client for the Luma Dream Machine video generation API."""
import logging

import httpx

from glowworm.schemas.video import VideoGeneration

logger = logging.getLogger(__name__)


class VideoGenerationError(Exception):
    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LumaClient:
    def __init__(self, http_client: httpx.AsyncClient):
        self._http = http_client

    @classmethod
    def create(cls, api_key: str, base_url: str, timeout_seconds: int) -> "LumaClient":
        http_client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout_seconds,
        )
        return cls(http_client)

    async def generate(self, prompt: str, aspect_ratio: str = "16:9", loop: bool = False) -> VideoGeneration:
        logger.info("Starting video generation: %s", prompt[:100])
        payload = {"prompt": prompt, "aspect_ratio": aspect_ratio, "loop": loop}
        data = await self._request("POST", "/generations", json=payload)
        logger.info("Video generation started: %s", data.get("id"))
        return _to_generation(data)

    async def get(self, generation_id: str) -> VideoGeneration:
        data = await self._request("GET", f"/generations/{generation_id}")
        logger.info("Video generation %s state: %s", generation_id, data.get("state"))
        return _to_generation(data)

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise VideoGenerationError(f"Video provider unreachable: {e}") from e

        if response.is_error:
            logger.error("Luma API error %d: %s", response.status_code, response.text[:500])
            raise VideoGenerationError("Video provider request failed", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise VideoGenerationError("Video provider returned invalid JSON") from e
        if not isinstance(data, dict) or not data.get("id"):
            raise VideoGenerationError("Video provider returned an unexpected response")
        return data

    async def close(self) -> None:
        await self._http.aclose()


def _to_generation(data: dict) -> VideoGeneration:
    assets = data.get("assets") or {}
    return VideoGeneration(
        id=str(data["id"]),
        state=str(data.get("state") or "unknown"),
        video_url=assets.get("video"),
        thumbnail_url=assets.get("thumbnail"),
        prompt=(data.get("request") or {}).get("prompt") or data.get("prompt"),
    )
