"""Shared pytest fixtures for the strapi-new test suite.

Provides reusable fixtures for:
- Temporary project directories and requests
- Event buses that record emitted lifecycle events
- Fake process runners standing in for npm / yarn
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from strapi_new.config import Config
from strapi_new.events import EventBus
from strapi_new.scaffolder.models import ProvisionRequest


# ---------------------------------------------------------------------------
# Paths & Requests
# ---------------------------------------------------------------------------

@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Target path for a generated project (does not exist yet)."""
    return tmp_path / "my-app"


@pytest.fixture
def make_request(project_root: Path):
    """Factory building a ``ProvisionRequest`` rooted at ``project_root``.

    Usage:
        def test_x(make_request):
            request = make_request(apidocs=True)
    """
    def factory(**overrides: Any) -> ProvisionRequest:
        fields: dict[str, Any] = {
            "root_path": project_root,
            "name": "My App",
            "uuid": "0b4c2a5e-8d1f-4f7e-9c3a-1e2d3c4b5a69",
            "client": "sqlite",
            "connection": {
                "settings": {"filename": ".tmp/data.db"},
                "options": {"useNullAsDefault": True},
            },
            "strapi_dependencies": ["strapi", "strapi-admin", "strapi-utils"],
            "additional_dependencies": {},
            "strapi_version": "3.0.0",
            "skip_install": True,
        }
        fields.update(overrides)
        return ProvisionRequest(**fields)

    return factory


@pytest.fixture
def provision_request(make_request) -> ProvisionRequest:
    """A default request with install skipped."""
    return make_request()


@pytest.fixture
def config() -> Config:
    """Configuration pointing at the packaged resources."""
    return Config()


@pytest.fixture
def event_bus() -> EventBus:
    """An event bus with no subscribers; inspect ``history`` / ``names``."""
    return EventBus()


# ---------------------------------------------------------------------------
# Fake package-manager processes
# ---------------------------------------------------------------------------


class FakeStream:
    """Async byte stream returning pre-recorded chunks, then EOF."""

    def __init__(self, chunks: list[bytes] | None = None) -> None:
        self._chunks = list(chunks or [])

    async def read(self, n: int = -1) -> bytes:
        if not self._chunks:
            return b""
        return self._chunks.pop(0)


class FakeProcess:
    """Stand-in for ``asyncio.subprocess.Process``."""

    def __init__(
        self,
        stdout: list[bytes] | None = None,
        stderr: list[bytes] | None = None,
        returncode: int = 0,
    ) -> None:
        self.stdout = FakeStream(stdout)
        self.stderr = FakeStream(stderr)
        self.returncode = returncode
        self.kill = MagicMock()

    async def wait(self) -> int:
        return self.returncode


class FakeRunner:
    """Process runner recording every spawn and returning a canned process.

    Pass ``error`` to make ``spawn`` raise instead (e.g. a missing binary).
    """

    def __init__(
        self,
        process: FakeProcess | None = None,
        error: Exception | None = None,
    ) -> None:
        self.process = process or FakeProcess()
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def spawn(self, binary: str, args: list[str], *, cwd: Path) -> FakeProcess:
        self.calls.append({"binary": binary, "args": list(args), "cwd": cwd})
        if self.error is not None:
            raise self.error
        return self.process


@pytest.fixture
def fake_runner():
    """Factory for ``FakeRunner`` instances.

    Usage:
        def test_install(fake_runner):
            runner = fake_runner(stderr=[b"network timeout"], returncode=1)
    """
    def factory(
        stdout: list[bytes] | None = None,
        stderr: list[bytes] | None = None,
        returncode: int = 0,
        error: Exception | None = None,
    ) -> FakeRunner:
        return FakeRunner(FakeProcess(stdout, stderr, returncode), error=error)

    return factory
