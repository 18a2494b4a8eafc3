import json
import os
import tempfile
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

_TEST_DIR = tempfile.mkdtemp(prefix="glowworm-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.sqlite3"
os.environ["DATA_DIR"] = _TEST_DIR
for _key in ("API_KEY", "OPENAI_API_KEY", "DAYTONA_API_KEY", "LUMA_API_KEY", "SANDBOX_SNAPSHOT"):
    os.environ[_key] = ""

from glowworm.sandbox.orchestrator import RESULT_PATH, SCRIPT_PATH  # noqa: E402
from glowworm.sandbox.provider import CommandResult, SandboxProvider, SandboxSession  # noqa: E402

RESOURCE_OUTPUT = """\
              total        used        free      shared  buff/cache   available
Mem:           7961        1234        5000          10        1700        6400
Swap:             0           0           0
Filesystem      Size  Used Avail Use% Mounted on
overlay          50G   12G   36G  25% /
tmpfs            64M     0   64M   0% /dev
top - 10:00:00 up 1 min,  0 users,  load average: 0.00, 0.00, 0.00
Tasks:   5 total,   1 running,   4 sleeping,   0 stopped,   0 zombie
%Cpu(s):  3.1 us,  1.0 sy,  0.0 ni, 95.9 id,  0.0 wa,  0.0 hi,  0.0 si,  0.0 st
MiB Mem :   7961.0 total,   5000.0 free,   1234.0 used,   1700.0 buff/cache
"""


class FakeSandboxSession(SandboxSession):
    def __init__(self, session_id: str, worker_result: dict | None, overrides: dict):
        self.id = session_id
        self.created_at = datetime.now(timezone.utc)
        self.commands: list[tuple[str, int | None]] = []
        self.files: dict[str, bytes] = {}
        self._worker_result = worker_result
        self._overrides = overrides

    async def exec(self, command: str, timeout: int | None = None) -> CommandResult:
        self.commands.append((command, timeout))
        for prefix, response in self._overrides.items():
            if command.startswith(prefix):
                if isinstance(response, Exception):
                    raise response
                return response
        if command.startswith(f"python3 {SCRIPT_PATH}") and self._worker_result is not None:
            self.files[RESULT_PATH] = json.dumps(self._worker_result).encode()
        if command.startswith("free -m"):
            return CommandResult(0, RESOURCE_OUTPUT)
        return CommandResult(0, "")

    async def upload(self, content: bytes, remote_path: str) -> None:
        self.files[remote_path] = content

    async def download(self, remote_path: str) -> bytes:
        if remote_path not in self.files:
            raise FileNotFoundError(remote_path)
        return self.files[remote_path]


class FakeSandboxProvider(SandboxProvider):
    """In-memory provider; the first ``failures`` create calls raise."""

    def __init__(self, failures: int = 0, worker_result: dict | None = None, overrides: dict | None = None):
        self.failures = failures
        self.worker_result = worker_result
        self.overrides = overrides or {}
        self.create_calls: list[tuple[dict, str | None]] = []
        self.sessions: list[FakeSandboxSession] = []
        self.deleted: list[str] = []

    async def create(self, env_vars: dict[str, str], snapshot: str | None = None) -> FakeSandboxSession:
        self.create_calls.append((env_vars, snapshot))
        if len(self.create_calls) <= self.failures:
            raise ConnectionError("sandbox API unavailable")
        session = FakeSandboxSession(f"sbx-{len(self.create_calls)}", self.worker_result, self.overrides)
        self.sessions.append(session)
        return session

    async def delete(self, session: SandboxSession) -> None:
        self.deleted.append(session.id)


def make_openai_client(*replies: str | None | Exception) -> MagicMock:
    """A stand-in for ``AsyncOpenAI`` answering each chat call with the next reply."""
    side_effects = []
    for reply in replies:
        if isinstance(reply, Exception):
            side_effects.append(reply)
            continue
        choice = MagicMock()
        choice.message.content = reply
        response = MagicMock()
        response.choices = [choice]
        side_effects.append(response)
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=side_effects)
    client.close = AsyncMock()
    return client


@pytest.fixture
def fake_provider_factory():
    return FakeSandboxProvider


@pytest.fixture
def openai_factory():
    return make_openai_client


@pytest.fixture
def no_sleep():
    delays: list[float] = []

    async def _sleep(seconds: float) -> None:
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep


@pytest.fixture
def install_services():
    """Swap the app's service container for one built from test doubles."""
    from glowworm.config import settings
    from glowworm.container import build_container
    from glowworm.main import app

    original = app.state.services

    def _install(**clients):
        app.state.services = build_container(settings, **clients)
        return app.state.services

    yield _install
    app.state.services = original


@pytest.fixture(autouse=True, scope="session")
def setup_test_db():
    import asyncio

    # Disable API key auth and providers for tests
    from glowworm.config import settings
    settings.api_key = ""
    settings.openai_api_key = ""

    from glowworm.container import build_container
    from glowworm.database import create_tables, async_session
    from glowworm.main import app
    from glowworm.seed import seed_data

    async def _setup():
        await create_tables()
        async with async_session() as session:
            await seed_data(session)

    asyncio.run(_setup())
    app.state.services = build_container(settings)


@pytest.fixture
def resource_output():
    return RESOURCE_OUTPUT
