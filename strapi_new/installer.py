"""Dependency installation for a freshly provisioned project.

Spawns ``npm`` or ``yarnpkg`` inside the project directory, streams its output
to a progress callback and turns any failure into an ``InstallOutcome``
instead of an exception. A failed install never touches the project on disk:
the user gets the exact command to retry by hand.
"""

from __future__ import annotations

import asyncio
import codecs
import inspect
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, Union

from strapi_new.config import InstallConfig
from strapi_new.events import EventBus, LifecycleEvent
from strapi_new.reporter import print_install_guidance
from strapi_new.scaffolder.models import ProvisionRequest
from strapi_new.utils import collapse_newlines, print_success, print_warning, truncate_tail

_READ_CHUNK = 4096


# ---------------------------------------------------------------------------
# Process-spawn abstraction
# ---------------------------------------------------------------------------


class ProcessHandle(Protocol):
    """The subset of ``asyncio.subprocess.Process`` the installer relies on."""

    stdout: asyncio.StreamReader | None
    stderr: asyncio.StreamReader | None

    async def wait(self) -> int: ...

    def kill(self) -> None: ...


class ProcessRunner(Protocol):
    async def spawn(self, binary: str, args: list[str], *, cwd: Path) -> ProcessHandle: ...


class AsyncioProcessRunner:
    """Spawns real child processes with piped output and no stdin."""

    async def spawn(self, binary: str, args: list[str], *, cwd: Path) -> ProcessHandle:
        return await asyncio.create_subprocess_exec(
            binary,
            *args,
            cwd=str(cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class InstallError(Exception):
    """Failure of the install process (non-zero exit, spawn error or timeout)."""

    def __init__(self, message: str, stderr: str = "", exit_code: int | None = None):
        self.stderr = stderr
        self.exit_code = exit_code
        super().__init__(message)


@dataclass
class InstallOutcome:
    """Result of the install phase.

    ``stderr`` holds only the trailing 1024 characters; ``full_stderr`` keeps
    everything the process wrote.
    """

    ok: bool
    skipped: bool = False
    stderr: str = ""
    full_stderr: str = ""
    error: InstallError | None = None
    retry_command: str = ""
    exit_code: int | None = None
    duration_seconds: float = 0.0


ProgressCallback = Callable[[str], None]
DiagnosticsCallback = Callable[[str, InstallError], Union[Awaitable[None], None]]


# ---------------------------------------------------------------------------
# Installer
# ---------------------------------------------------------------------------


class Installer:
    """Runs the package manager for a provisioned project.

    Args:
        config: Binaries, argument list and optional timeout.
        runner: Process spawner; defaults to ``AsyncioProcessRunner``.
        events: Bus receiving install lifecycle events.
        on_progress: Called with every output chunk, flattened to one line.
        capture_stderr: Diagnostics sink handed the full failure.
    """

    def __init__(
        self,
        config: InstallConfig | None = None,
        runner: ProcessRunner | None = None,
        events: EventBus | None = None,
        on_progress: ProgressCallback | None = None,
        capture_stderr: DiagnosticsCallback | None = None,
    ) -> None:
        self.config = config or InstallConfig()
        self.runner = runner or AsyncioProcessRunner()
        self.events = events or EventBus()
        self.on_progress = on_progress
        self.capture_stderr = capture_stderr
        self._progress_broken = False

    @staticmethod
    def retry_command(request: ProvisionRequest) -> str:
        return f"cd {request.root_path} && {request.package_manager} install"

    async def install(self, request: ProvisionRequest) -> InstallOutcome:
        """Install the project's dependencies.

        Returns:
            A successful outcome (possibly ``skipped``) or a failed one. This
            method does not raise for install failures.
        """
        if request.skip_install:
            await self.events.emit(LifecycleEvent.INSTALL_SUCCEEDED, request)
            return InstallOutcome(ok=True, skipped=True)

        binary = self.config.binary_for(request.use_yarn)
        args = list(self.config.arguments)
        start = time.monotonic()
        stderr_chunks: list[str] = []
        self._progress_broken = False

        try:
            process = await self.runner.spawn(binary, args, cwd=Path(request.root_path))
        except OSError as exc:
            error = InstallError(f"Could not start '{binary}': {exc}", stderr=str(exc))
            return await self._fail(request, error, start)

        try:
            exit_code = await asyncio.wait_for(
                self._drain(process, stderr_chunks), timeout=self.config.timeout
            )
        except asyncio.TimeoutError:
            await _terminate(process)
            stderr = "".join(stderr_chunks)
            error = InstallError(
                f"'{binary} {' '.join(args)}' timed out after {self.config.timeout}s",
                stderr=stderr,
            )
            return await self._fail(request, error, start)
        except BaseException:
            await _terminate(process)
            raise

        stderr = "".join(stderr_chunks)
        if exit_code != 0:
            error = InstallError(
                f"'{binary} {' '.join(args)}' exited with code {exit_code}",
                stderr=stderr,
                exit_code=exit_code,
            )
            return await self._fail(request, error, start)

        print_success("Dependencies installed successfully.")
        await self.events.emit(LifecycleEvent.INSTALL_SUCCEEDED, request)
        return InstallOutcome(
            ok=True,
            full_stderr=stderr,
            stderr=truncate_tail(stderr),
            exit_code=exit_code,
            duration_seconds=time.monotonic() - start,
        )

    # -- Internals ---------------------------------------------------------

    async def _drain(self, process: ProcessHandle, stderr_chunks: list[str]) -> int:
        """Pump both output streams until EOF, then wait for the exit code."""
        pumps = [
            asyncio.ensure_future(self._pump(process.stdout, None)),
            asyncio.ensure_future(self._pump(process.stderr, stderr_chunks)),
        ]
        try:
            await asyncio.gather(*pumps)
        finally:
            for pump in pumps:
                pump.cancel()
        return await process.wait()

    async def _pump(
        self, stream: asyncio.StreamReader | None, sink: list[str] | None
    ) -> None:
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                break
            text = decoder.decode(chunk)
            if not text:
                continue
            if sink is not None:
                sink.append(text)
            self._report_progress(collapse_newlines(text))
        tail = decoder.decode(b"", final=True)
        if tail and sink is not None:
            sink.append(tail)

    def _report_progress(self, text: str) -> None:
        """Forward *text* to ``on_progress``; a failing sink is dropped."""
        if self.on_progress is None or self._progress_broken:
            return
        try:
            self.on_progress(text)
        except Exception as exc:
            self._progress_broken = True
            print_warning(f"Install progress display failed: {exc}")

    async def _fail(
        self, request: ProvisionRequest, error: InstallError, start: float
    ) -> InstallOutcome:
        full = error.stderr
        tail = truncate_tail(full)

        await self.events.emit(LifecycleEvent.INSTALL_FAILED, request, error=tail)
        if self.capture_stderr is not None:
            try:
                result: Any = self.capture_stderr(LifecycleEvent.INSTALL_FAILED.value, error)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                print_warning(f"Could not capture install diagnostics: {exc}")

        retry = self.retry_command(request)
        print_install_guidance(request.root_path, request.package_manager, full)

        return InstallOutcome(
            ok=False,
            stderr=tail,
            full_stderr=full,
            error=error,
            retry_command=retry,
            exit_code=error.exit_code,
            duration_seconds=time.monotonic() - start,
        )


async def _terminate(process: ProcessHandle) -> None:
    """Kill *process* and reap it. A child that already exited is fine."""
    try:
        process.kill()
    except ProcessLookupError:
        pass
    await process.wait()
