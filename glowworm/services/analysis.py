"""Media analysis orchestration: classify, pick a method, run it, fall back."""
import logging
import time

from glowworm.sandbox.orchestrator import SandboxOrchestrator
from glowworm.schemas.analysis import (
    AnalysisResult,
    Complexity,
    EnhancedAnalysisResult,
    MediaDescriptor,
    MediaKind,
    ProcessingMethod,
)
from glowworm.services.complexity import classify
from glowworm.services.method_policy import MethodTable, select_method
from glowworm.services.outcome import Degraded, Success
from glowworm.services.tags import dedupe_tags
from glowworm.services.vision import VisionAnalyzer
from glowworm.utils.response import mask_secrets

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _enhance(
    result: AnalysisResult,
    complexity: Complexity,
    started: float,
    method: ProcessingMethod = ProcessingMethod.LOCAL,
) -> EnhancedAnalysisResult:
    return EnhancedAnalysisResult(
        **result.model_dump(),
        processing_method=method,
        processing_time=_elapsed_ms(started),
        complexity=complexity,
    )


def basic_video_analysis(descriptor: MediaDescriptor) -> AnalysisResult:
    return AnalysisResult(
        description=f"Video file: {descriptor.name}",
        objects=["video", "media"],
        colors=["unknown"],
        mood="dynamic",
        confidence=0.7,
        tags=["video", "media", "uploaded"],
    )


def basic_audio_analysis(descriptor: MediaDescriptor) -> AnalysisResult:
    return AnalysisResult(
        description=f"Audio file: {descriptor.name}",
        objects=["audio", "sound"],
        colors=[],
        mood="neutral",
        confidence=0.5,
        tags=dedupe_tags([descriptor.subtype, "audio", "media"]),
    )


def basic_document_analysis(descriptor: MediaDescriptor) -> AnalysisResult:
    return AnalysisResult(
        description=f"File: {descriptor.name}",
        objects=["document"],
        colors=[],
        mood="neutral",
        confidence=0.3,
        tags=dedupe_tags([descriptor.subtype or "unknown", "document"]),
    )


def error_stub(descriptor: MediaDescriptor) -> EnhancedAnalysisResult:
    """Placeholder for a file whose analysis raised."""
    return EnhancedAnalysisResult(
        description=f"Failed to analyze: {descriptor.name}",
        objects=[],
        colors=[],
        mood="unknown",
        confidence=0.1,
        tags=["error", "failed"],
        processing_method=ProcessingMethod.LOCAL,
        processing_time=0,
        complexity=Complexity.SIMPLE,
    )


class MediaAnalysisService:
    def __init__(
        self,
        vision: VisionAnalyzer,
        sandbox: SandboxOrchestrator | None = None,
        method_table: MethodTable | None = None,
    ):
        self._vision = vision
        self._sandbox = sandbox
        self._method_table = method_table

    @property
    def vision(self) -> VisionAnalyzer:
        return self._vision

    @property
    def sandbox_available(self) -> bool:
        return self._sandbox is not None

    async def analyze(
        self,
        file_bytes: bytes,
        descriptor: MediaDescriptor,
        user_id: str,
    ) -> Success[EnhancedAnalysisResult] | Degraded[EnhancedAnalysisResult]:
        """Analyze one file; sandbox failures degrade to local analysis."""
        started = time.monotonic()
        complexity = classify(descriptor.mime_type, descriptor.size)
        method = select_method(descriptor, complexity, self._method_table)
        logger.info(
            "Analyzing %s (%.1fMB, %s complexity, %s processing)",
            descriptor.name, descriptor.size_mb, complexity.value, method.value,
        )

        if method is ProcessingMethod.SANDBOX:
            return await self._analyze_in_sandbox(file_bytes, descriptor, complexity, user_id, started)
        return await self._analyze_locally(file_bytes, descriptor, complexity, started)

    async def _analyze_locally(
        self,
        file_bytes: bytes,
        descriptor: MediaDescriptor,
        complexity: Complexity,
        started: float,
    ) -> Success[EnhancedAnalysisResult] | Degraded[EnhancedAnalysisResult]:
        kind = descriptor.media_kind
        if kind is MediaKind.IMAGE:
            outcome = await self._vision.analyze(file_bytes, descriptor.mime_type)
            enhanced = _enhance(outcome.result, complexity, started)
            if isinstance(outcome, Degraded):
                return Degraded(enhanced, outcome.reason)
            return Success(enhanced)

        if kind is MediaKind.VIDEO:
            basic = basic_video_analysis(descriptor)
        elif kind is MediaKind.AUDIO:
            basic = basic_audio_analysis(descriptor)
        else:
            basic = basic_document_analysis(descriptor)
        return Success(_enhance(basic, complexity, started))

    async def _analyze_in_sandbox(
        self,
        file_bytes: bytes,
        descriptor: MediaDescriptor,
        complexity: Complexity,
        user_id: str,
        started: float,
    ) -> Success[EnhancedAnalysisResult] | Degraded[EnhancedAnalysisResult]:
        if self._sandbox is None:
            reason = "sandbox not configured"
        else:
            try:
                result = await self._sandbox.analyze(file_bytes, descriptor, complexity, user_id)
                return Success(result)
            except Exception as e:
                logger.warning("Sandbox analysis of %s failed, using local processing: %s", descriptor.name, e)
                reason = f"sandbox failed: {mask_secrets(str(e))}"

        fallback = await self._local_fallback(file_bytes, descriptor, complexity, started)
        return Degraded(fallback, reason)

    async def _local_fallback(
        self,
        file_bytes: bytes,
        descriptor: MediaDescriptor,
        complexity: Complexity,
        started: float,
    ) -> EnhancedAnalysisResult:
        if descriptor.media_kind is MediaKind.VIDEO:
            basic = basic_video_analysis(descriptor)
            boosted = basic.model_copy(update={
                "tags": dedupe_tags([*basic.tags, "processed", "analyzed"]),
                "confidence": min(round(basic.confidence + 0.1, 2), 1.0),
            })
            return _enhance(boosted, complexity, started)

        outcome = await self._analyze_locally(file_bytes, descriptor, complexity, started)
        return outcome.result
