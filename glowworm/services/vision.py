"""Local analyzer: one vision-model call per file, fixed fallback on any failure."""
import base64
import json
import logging

from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from glowworm.schemas.analysis import AnalysisResult
from glowworm.services.outcome import Degraded, Success
from glowworm.services.tags import dedupe_tags
from glowworm.utils.llm import build_api_kwargs, load_prompt, strip_code_fence
from glowworm.utils.response import mask_secrets

logger = logging.getLogger(__name__)

FALLBACK_ANALYSIS = AnalysisResult(
    description="Image uploaded successfully",
    objects=["image"],
    colors=["unknown"],
    mood="neutral",
    confidence=0.5,
    tags=["uploaded", "unprocessed"],
)


class VisionReply(BaseModel):
    """Shape the vision model must return; anything else is unparsable."""

    description: str
    objects: list[str]
    colors: list[str]
    mood: str
    confidence: float
    tags: list[str]


class VisionAnalyzer:
    def __init__(self, client: AsyncOpenAI | None, model: str, tag_model: str | None = None):
        self._client = client
        self._model = model
        self._tag_model = tag_model or model

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def analyze(self, file_bytes: bytes, mime_type: str) -> Success[AnalysisResult] | Degraded[AnalysisResult]:
        """Describe an image. Never raises; failures yield ``FALLBACK_ANALYSIS``."""
        if self._client is None:
            return Degraded(FALLBACK_ANALYSIS, "vision provider not configured")

        try:
            raw_text = await self._request(file_bytes, mime_type or "image/jpeg")
        except Exception as e:
            logger.exception("Vision request failed")
            return Degraded(FALLBACK_ANALYSIS, f"vision request failed: {mask_secrets(str(e))}")

        try:
            return Success(parse_vision_reply(raw_text))
        except (ValueError, ValidationError) as e:
            logger.warning("Unparsable vision reply (%d chars): %s", len(raw_text), e)
            return Degraded(FALLBACK_ANALYSIS, "unparsable vision reply")

    async def _request(self, file_bytes: bytes, mime_type: str) -> str:
        b64 = base64.b64encode(file_bytes).decode("utf-8")
        content: list[dict] = [
            {"type": "text", "text": load_prompt("media_analysis.txt")},
            {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{b64}"}},
        ]
        api_kwargs = build_api_kwargs(self._model, [{"role": "user", "content": content}])
        logger.info("Vision request: model=%s, bytes=%d", self._model, len(file_bytes))

        response = await self._client.chat.completions.create(**api_kwargs)
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def generate_tags(self, analysis: AnalysisResult) -> list[str]:
        """Ask the model for extra searchable tags; falls back to ``analysis.tags``."""
        if self._client is None:
            return list(analysis.tags)

        summary = (
            f"Generate tags for this media analysis:\n"
            f"Description: {analysis.description}\n"
            f"Objects: {', '.join(analysis.objects)}\n"
            f"Colors: {', '.join(analysis.colors)}\n"
            f"Mood: {analysis.mood}"
        )
        messages = [
            {"role": "system", "content": load_prompt("tag_generation.txt")},
            {"role": "user", "content": summary},
        ]
        try:
            response = await self._client.chat.completions.create(
                **build_api_kwargs(self._tag_model, messages, max_tokens=100)
            )
            raw = response.choices[0].message.content if response.choices else None
            if not raw:
                return list(analysis.tags)
            tags = json.loads(strip_code_fence(raw))
        except Exception:
            logger.exception("Tag generation failed")
            return list(analysis.tags)

        if not isinstance(tags, list):
            return list(analysis.tags)
        return dedupe_tags(tags)


def parse_vision_reply(raw_text: str) -> AnalysisResult:
    """Parse the model's JSON reply into an ``AnalysisResult``.

    Raises ``ValueError`` for an empty or non-JSON reply and
    ``ValidationError`` when a key is missing or has the wrong type.
    """
    text = strip_code_fence(raw_text)
    if not text:
        raise ValueError("empty reply")
    reply = VisionReply.model_validate(json.loads(text))
    return AnalysisResult(
        description=reply.description,
        objects=reply.objects,
        colors=reply.colors,
        mood=reply.mood,
        confidence=reply.confidence,
        tags=dedupe_tags(reply.tags),
    )
