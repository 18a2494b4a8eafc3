"""Sandbox provider backed by the Daytona SDK."""
import logging
from datetime import datetime, timezone

from daytona import AsyncDaytona, CreateSandboxFromSnapshotParams, DaytonaConfig

from glowworm.config import Settings
from glowworm.sandbox.provider import CommandResult, SandboxProvider, SandboxSession

logger = logging.getLogger(__name__)


class DaytonaSession(SandboxSession):
    def __init__(self, sandbox):
        self.sandbox = sandbox
        self.id = str(sandbox.id)
        self.created_at = datetime.now(timezone.utc)

    async def exec(self, command: str, timeout: int | None = None) -> CommandResult:
        response = await self.sandbox.process.exec(command, timeout=timeout)
        return CommandResult(exit_code=int(response.exit_code), output=response.result or "")

    async def upload(self, content: bytes, remote_path: str) -> None:
        await self.sandbox.fs.upload_file(content, remote_path)

    async def download(self, remote_path: str) -> bytes:
        return await self.sandbox.fs.download_file(remote_path)


class DaytonaSandboxProvider(SandboxProvider):
    def __init__(self, client: AsyncDaytona, language: str = "python"):
        self._client = client
        self._language = language

    @classmethod
    def from_settings(cls, settings: Settings) -> "DaytonaSandboxProvider":
        config = DaytonaConfig(
            api_key=settings.daytona_api_key,
            api_url=settings.daytona_api_url,
            target=settings.daytona_target or None,
        )
        return cls(AsyncDaytona(config))

    async def create(self, env_vars: dict[str, str], snapshot: str | None = None) -> DaytonaSession:
        params = CreateSandboxFromSnapshotParams(
            language=self._language,
            env_vars=env_vars,
            snapshot=snapshot or None,
        )
        sandbox = await self._client.create(params)
        logger.info("Daytona sandbox created: %s", sandbox.id)
        return DaytonaSession(sandbox)

    async def delete(self, session: SandboxSession) -> None:
        await self._client.delete(session.sandbox)
        logger.info("Daytona sandbox deleted: %s", session.id)

    async def close(self) -> None:
        await self._client.close()
