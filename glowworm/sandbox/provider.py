from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    output: str


class SandboxSession(ABC):
    """A remote execution environment owned by a single analysis call."""

    id: str
    created_at: datetime

    @abstractmethod
    async def exec(self, command: str, timeout: int | None = None) -> CommandResult:
        """Run a shell command; ``timeout`` is in seconds, ``None`` for no limit."""
        raise NotImplementedError

    @abstractmethod
    async def upload(self, content: bytes, remote_path: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def download(self, remote_path: str) -> bytes:
        raise NotImplementedError


class SandboxProvider(ABC):
    @abstractmethod
    async def create(self, env_vars: dict[str, str], snapshot: str | None = None) -> SandboxSession:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, session: SandboxSession) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None
