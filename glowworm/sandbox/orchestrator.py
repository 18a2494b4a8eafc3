"""Run one file's analysis inside a freshly provisioned remote sandbox.

Each call owns exactly one ``SandboxSession``: it is created (with retries),
used for runtime setup, file upload, script execution and result download,
and deleted again before the call returns, whatever the outcome. Errors after
a successful provision are not retried; they propagate so the caller can fall
back to local analysis.
"""
import asyncio
import json
import logging
import os
import shlex
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from glowworm.sandbox.exceptions import SandboxExecutionError, SandboxProvisioningError
from glowworm.sandbox.provider import SandboxProvider, SandboxSession
from glowworm.sandbox.resources import RESOURCE_COMMAND, parse_resource_usage
from glowworm.schemas.analysis import (
    AnalysisResult,
    Complexity,
    EnhancedAnalysisResult,
    MediaDescriptor,
    MediaKind,
    ProcessingMethod,
    ResourceUsage,
)
from glowworm.services.tags import dedupe_tags, synthesize_tags
from glowworm.utils.filenames import safe_filename

logger = logging.getLogger(__name__)

WORK_DIR = "/tmp/glowworm"
SCRIPT_PATH = f"{WORK_DIR}/worker.py"
RESULT_PATH = f"{WORK_DIR}/result.json"
INPUT_DIR = f"{WORK_DIR}/input"
WORKER_SOURCE = os.path.join(os.path.dirname(__file__), "worker.py")

EXECUTION_TIMEOUTS: dict[Complexity, int] = {
    Complexity.SIMPLE: 5 * 60,
    Complexity.MEDIUM: 15 * 60,
    Complexity.COMPLEX: 45 * 60,
    Complexity.ENTERPRISE: 120 * 60,
}

SNAPSHOT_PROCESSING_TYPES = {"image", "video", "batch"}


@dataclass(frozen=True)
class PerformanceProfile:
    memory_limit_mb: int
    concurrency: int
    batch_size: int


PERFORMANCE_PROFILES: dict[Complexity, PerformanceProfile] = {
    Complexity.SIMPLE: PerformanceProfile(memory_limit_mb=2048, concurrency=1, batch_size=10),
    Complexity.MEDIUM: PerformanceProfile(memory_limit_mb=4096, concurrency=2, batch_size=25),
    Complexity.COMPLEX: PerformanceProfile(memory_limit_mb=8192, concurrency=3, batch_size=50),
    Complexity.ENTERPRISE: PerformanceProfile(memory_limit_mb=16384, concurrency=5, batch_size=100),
}


@dataclass(frozen=True)
class KindDefaults:
    description: str
    objects: tuple[str, ...]
    mood: str
    confidence: float
    base_tags: tuple[str, ...]
    ai_provider: str
    id_prefix: str


KIND_DEFAULTS: dict[MediaKind, KindDefaults] = {
    MediaKind.IMAGE: KindDefaults("Image processed in sandbox", (), "neutral", 0.8, (), "openai", "img"),
    MediaKind.VIDEO: KindDefaults(
        "Video processed in sandbox", ("video", "motion"), "dynamic", 0.7, ("video", "motion"), "openai", "vid"
    ),
    MediaKind.AUDIO: KindDefaults(
        "Audio processed in sandbox", ("audio", "sound"), "neutral", 0.7, ("audio", "sound"), "elevenlabs", "aud"
    ),
    MediaKind.DOCUMENT: KindDefaults(
        "Document processed in sandbox", ("document",), "neutral", 0.7, ("document",), "openai", "doc"
    ),
}


@dataclass(frozen=True)
class SandboxJob:
    descriptor: MediaDescriptor
    complexity: Complexity
    user_id: str
    file_id: str
    timeout_disabled: bool
    ai_provider: str
    model_type: str

    @property
    def processing_type(self) -> str:
        return self.descriptor.media_kind.value


def execution_timeout(complexity: Complexity, timeout_disabled: bool) -> int | None:
    """Seconds allowed for the processing script, ``None`` when disabled."""
    if timeout_disabled:
        return None
    return EXECUTION_TIMEOUTS.get(complexity, EXECUTION_TIMEOUTS[Complexity.MEDIUM])


def timeout_disabled_for(kind: MediaKind, complexity: Complexity) -> bool:
    return kind is MediaKind.VIDEO or complexity in (Complexity.COMPLEX, Complexity.ENTERPRISE)


def use_snapshot(processing_type: str, attempt: int, snapshot: str | None) -> bool:
    """Reuse the prepared snapshot on the first attempt only."""
    return bool(snapshot) and attempt == 1 and processing_type in SNAPSHOT_PROCESSING_TYPES


class SandboxOrchestrator:
    def __init__(
        self,
        provider: SandboxProvider,
        *,
        credentials: dict[str, str] | None = None,
        snapshot: str | None = None,
        model_type: str = "gpt-4o-mini",
        create_attempts: int = 3,
        backoff_base_seconds: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._provider = provider
        self._credentials = dict(credentials or {})
        self._snapshot = snapshot or None
        self._model_type = model_type
        self._create_attempts = max(1, create_attempts)
        self._backoff_base = backoff_base_seconds
        self._sleep = sleep

    def build_job(
        self,
        descriptor: MediaDescriptor,
        complexity: Complexity,
        user_id: str,
        timeout_disabled: bool | None = None,
    ) -> SandboxJob:
        kind = descriptor.media_kind
        defaults = KIND_DEFAULTS[kind]
        if timeout_disabled is None:
            timeout_disabled = timeout_disabled_for(kind, complexity)
        return SandboxJob(
            descriptor=descriptor,
            complexity=complexity,
            user_id=user_id,
            file_id=f"{defaults.id_prefix}_{uuid.uuid4().hex[:12]}",
            timeout_disabled=timeout_disabled,
            ai_provider=defaults.ai_provider,
            model_type=self._model_type,
        )

    def build_env(self, job: SandboxJob, attempt: int, snapshot_in_use: bool) -> dict[str, str]:
        profile = PERFORMANCE_PROFILES.get(job.complexity, PERFORMANCE_PROFILES[Complexity.MEDIUM])
        return {
            "PROCESSING_TYPE": job.processing_type,
            "FILE_SIZE": str(job.descriptor.size),
            "COMPLEXITY": job.complexity.value,
            "FILE_ID": job.file_id,
            "FILE_NAME": safe_filename(job.descriptor.name),
            "USER_ID": job.user_id,
            "AI_PROVIDER": job.ai_provider,
            "MODEL_TYPE": job.model_type,
            "OPENAI_API_KEY": self._credentials.get("openai", ""),
            "XAI_API_KEY": self._credentials.get("xai", ""),
            "ELEVENLABS_API_KEY": self._credentials.get("elevenlabs", ""),
            "TIMEOUT_DISABLED": "true" if job.timeout_disabled else "false",
            "USE_SNAPSHOT": "true" if snapshot_in_use else "false",
            "MEMORY_LIMIT_MB": str(profile.memory_limit_mb),
            "CONCURRENCY": str(profile.concurrency),
            "BATCH_SIZE": str(profile.batch_size),
            "OPTIMIZATION_LEVEL": job.complexity.value,
            "CREATED_AT": datetime.now(timezone.utc).isoformat(),
            "ATTEMPT_NUMBER": str(attempt),
            "RESULT_PATH": RESULT_PATH,
        }

    async def provision(self, job: SandboxJob) -> tuple[SandboxSession, bool]:
        """Create a session, retrying with exponential backoff."""
        last_error: Exception | None = None
        for attempt in range(1, self._create_attempts + 1):
            snapshot_in_use = use_snapshot(job.processing_type, attempt, self._snapshot)
            logger.info(
                "Creating sandbox for %s processing (attempt %d/%d, snapshot=%s)",
                job.processing_type, attempt, self._create_attempts, snapshot_in_use,
            )
            try:
                session = await self._provider.create(
                    self.build_env(job, attempt, snapshot_in_use),
                    snapshot=self._snapshot if snapshot_in_use else None,
                )
                return session, snapshot_in_use
            except Exception as e:
                last_error = e
                logger.warning("Sandbox creation attempt %d failed: %s", attempt, e)
                if attempt < self._create_attempts:
                    delay = self._backoff_base ** attempt
                    logger.info("Retrying sandbox creation in %.0f seconds", delay)
                    await self._sleep(delay)

        raise SandboxProvisioningError(
            f"Failed to create sandbox after {self._create_attempts} attempts: {last_error}"
        ) from last_error

    async def analyze(
        self,
        file_bytes: bytes,
        descriptor: MediaDescriptor,
        complexity: Complexity,
        user_id: str,
        timeout_disabled: bool | None = None,
    ) -> EnhancedAnalysisResult:
        started = time.monotonic()
        job = self.build_job(descriptor, complexity, user_id, timeout_disabled)
        session, snapshot_in_use = await self.provision(job)
        logger.info("Sandbox %s ready for %s", session.id, descriptor.name)

        try:
            await self._prepare_runtime(session, snapshot_in_use)
            remote_file = await self._upload_inputs(session, file_bytes, descriptor.name)
            await self._run_worker(session, remote_file, job)
            payload = await self._read_result(session, job)
            usage = await self._resource_usage(session)
        finally:
            await self.cleanup(session)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        return build_sandbox_analysis(payload, job, usage, session.id, elapsed_ms)

    async def _prepare_runtime(self, session: SandboxSession, snapshot_in_use: bool) -> None:
        mkdir = await session.exec(f"mkdir -p {INPUT_DIR}")
        if mkdir.exit_code != 0:
            raise SandboxExecutionError(f"Could not create work dir: {mkdir.output.strip()}")

        if snapshot_in_use:
            check = await session.exec('python3 --version && python3 -c "import openai"')
            if check.exit_code == 0:
                logger.info("Snapshot runtime verified: %s", check.output.strip())
                return
            logger.warning("Snapshot is missing dependencies, installing fresh")

        install = await session.exec("python3 -m pip install --quiet openai")
        if install.exit_code != 0:
            raise SandboxExecutionError(f"Runtime setup failed: {install.output.strip()[-500:]}")

    async def _upload_inputs(self, session: SandboxSession, file_bytes: bytes, name: str) -> str:
        remote_file = f"{INPUT_DIR}/{safe_filename(name)}"
        with open(WORKER_SOURCE, "rb") as f:
            script = f.read()
        try:
            await session.upload(file_bytes, remote_file)
            await session.upload(script, SCRIPT_PATH)
        except Exception as e:
            raise SandboxExecutionError(f"File upload failed: {e}") from e
        logger.info("Uploaded %d bytes to %s", len(file_bytes), remote_file)
        return remote_file

    async def _run_worker(self, session: SandboxSession, remote_file: str, job: SandboxJob) -> None:
        timeout = execution_timeout(job.complexity, job.timeout_disabled)
        logger.info("Running worker in %s (timeout=%s)", session.id, timeout or "disabled")
        result = await session.exec(f"python3 {SCRIPT_PATH} {shlex.quote(remote_file)}", timeout=timeout)
        if result.exit_code != 0:
            raise SandboxExecutionError(
                f"Worker exited with code {result.exit_code}: {result.output.strip()[-500:]}"
            )

    async def _read_result(self, session: SandboxSession, job: SandboxJob) -> dict:
        try:
            raw = await session.download(RESULT_PATH)
            payload = json.loads(raw)
        except Exception as e:
            logger.warning("No readable result file in %s (%s), using completion stub", session.id, e)
            payload = None
        if not isinstance(payload, dict):
            return {"type": job.processing_type, "status": "completed", "message": "Processing completed"}
        return payload

    async def _resource_usage(self, session: SandboxSession) -> ResourceUsage:
        try:
            result = await session.exec(RESOURCE_COMMAND)
        except Exception as e:
            logger.warning("Resource sampling failed in %s: %s", session.id, e)
            return ResourceUsage()
        return parse_resource_usage(result.output)

    async def cleanup(self, session: SandboxSession) -> None:
        """Stop remote processes, remove temp files and delete the session."""
        for command in ("pkill -f worker.py || true", "pkill -f ffmpeg || true", f"rm -rf {WORK_DIR} || true"):
            try:
                await session.exec(command)
            except Exception as e:
                logger.warning("Sandbox cleanup command failed in %s: %s", session.id, e)
        try:
            await self._provider.delete(session)
        except Exception as e:
            logger.warning("Sandbox %s could not be deleted: %s", session.id, e)


def _as_str_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v]


def _as_confidence(value, default: float) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return default
    if not confidence:
        return default
    return min(max(confidence, 0.0), 1.0)


def build_sandbox_analysis(
    payload: dict,
    job: SandboxJob,
    usage: ResourceUsage,
    sandbox_id: str,
    elapsed_ms: int,
) -> EnhancedAnalysisResult:
    """Map the worker's JSON onto an analysis, filling kind-specific defaults."""
    kind = job.descriptor.media_kind
    defaults = KIND_DEFAULTS[kind]
    ai = payload.get("ai_analysis")
    ai = ai if isinstance(ai, dict) else {}

    core = AnalysisResult(
        description=str(ai.get("description") or defaults.description),
        objects=_as_str_list(ai.get("objects")) or list(defaults.objects),
        colors=[] if kind is MediaKind.AUDIO else _as_str_list(ai.get("colors")),
        mood=str(ai.get("mood") or defaults.mood),
        confidence=_as_confidence(ai.get("confidence"), defaults.confidence),
    )
    if ai:
        tags = synthesize_tags(core, defaults.base_tags)
    else:
        tags = dedupe_tags(defaults.base_tags)

    return EnhancedAnalysisResult(
        **core.model_dump(exclude={"tags"}),
        tags=tags,
        processing_method=ProcessingMethod.SANDBOX,
        processing_time=elapsed_ms,
        complexity=job.complexity,
        sandbox_id=sandbox_id,
        resource_usage=usage,
    )
