"""Project provisioning: build the on-disk skeleton of a new application.

The provisioner runs a fixed, strictly ordered list of filesystem steps inside
the target directory. The whole list is a single rollback boundary: if any
step fails, the target directory is removed and a ``ProvisioningError`` is
raised, so the caller only ever sees a fully provisioned project or nothing.
"""

from __future__ import annotations

import asyncio
import shutil
from collections.abc import Awaitable, Callable
from pathlib import Path

from strapi_new.config import Config
from strapi_new.events import EventBus, LifecycleEvent
from strapi_new.scaffolder.manifest import write_manifest
from strapi_new.scaffolder.models import ProvisionRequest, ProvisionResult, StepOutcome
from strapi_new.scaffolder.templates import TemplateRenderer
from strapi_new.utils import console, ensure_dir, print_error, print_warning, write_text


STEP_COPY_FILES = "copy_files"
STEP_COPY_DOT_FILES = "copy_dot_files"
STEP_WRITE_MANIFEST = "write_manifest"
STEP_ENSURE_NODE_MODULES = "ensure_node_modules"
STEP_WRITE_DATABASE_CONFIG = "write_database_config"
STEP_WRITE_DOCS_CONFIG = "write_docs_config"

DATABASE_CONFIG_PATH = Path("config") / "database.js"
DOCS_CONFIG_PATH = Path("optic.yml")
NODE_MODULES_DIR = "node_modules"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ProvisioningError(Exception):
    """Raised when a provisioning step fails. The target has been rolled back.

    Attributes:
        step: Name of the step that failed.
        result: Step outcomes recorded up to and including the failure.
        rollback_error: Set when removing the target directory failed too.
    """

    def __init__(
        self,
        step: str,
        message: str,
        result: ProvisionResult | None = None,
        rollback_error: OSError | None = None,
    ) -> None:
        self.step = step
        self.result = result
        self.rollback_error = rollback_error
        super().__init__(f"Provisioning failed at step '{step}': {message}")


class DocsConfigError(ProvisioningError):
    """Raised when the API-docs monitoring config cannot be written."""


# ---------------------------------------------------------------------------
# Provisioner
# ---------------------------------------------------------------------------

Step = tuple[str, Callable[[ProvisionRequest], Awaitable[None]], "LifecycleEvent | None"]


class Provisioner:
    """Creates the project skeleton for a ``ProvisionRequest``.

    Steps, in order:
    1. Copy the static asset tree.
    2. Copy the hidden-file templates, prefixing each name with a dot.
    3. Write ``package.json``.
    4. Ensure ``node_modules/`` exists.
    5. Render ``config/database.js``.
    6. Render ``optic.yml`` (only when API docs are requested).
    """

    def __init__(
        self,
        config: Config | None = None,
        renderer: TemplateRenderer | None = None,
        events: EventBus | None = None,
    ) -> None:
        self.config = config or Config()
        self.renderer = renderer or TemplateRenderer()
        self.events = events or EventBus()

    async def provision(self, request: ProvisionRequest) -> ProvisionResult:
        """Run every provisioning step for *request*.

        Returns:
            A ``ProvisionResult`` with one successful outcome per step.

        Raises:
            DocsConfigError: If writing the docs config failed.
            ProvisioningError: If any other step failed.
        """
        root = Path(request.root_path)
        result = ProvisionResult(root_path=root)
        console.print("Creating files.")

        for name, action, event in self._steps(request):
            try:
                await action(request)
            except Exception as err:
                result.steps.append(StepOutcome(step=name, ok=False, error=str(err)))
                rollback_error = await self._rollback(root)
                error_cls = ProvisioningError
                if name == STEP_WRITE_DOCS_CONFIG:
                    print_error("Error while writing optic.yml for apidocs")
                    error_cls = DocsConfigError
                raise error_cls(
                    name, str(err), result=result, rollback_error=rollback_error
                ) from err

            result.steps.append(StepOutcome(step=name))
            if event is not None:
                await self.events.emit(event, request)

        return result

    def _steps(self, request: ProvisionRequest) -> list[Step]:
        steps: list[Step] = [
            (STEP_COPY_FILES, self._copy_files, None),
            (STEP_COPY_DOT_FILES, self._copy_dot_files, LifecycleEvent.FILES_COPIED),
            (STEP_WRITE_MANIFEST, self._write_manifest, LifecycleEvent.PACKAGE_MANIFEST_WRITTEN),
            (STEP_ENSURE_NODE_MODULES, self._ensure_node_modules, None),
            (
                STEP_WRITE_DATABASE_CONFIG,
                self._write_database_config,
                LifecycleEvent.CONFIG_FILES_WRITTEN,
            ),
        ]
        if request.apidocs:
            steps.append((STEP_WRITE_DOCS_CONFIG, self._write_docs_config, None))
        return steps

    # -- Steps -------------------------------------------------------------

    async def _copy_files(self, request: ProvisionRequest) -> None:
        await asyncio.to_thread(
            shutil.copytree,
            self.config.files_dir,
            request.root_path,
            dirs_exist_ok=True,
        )

    async def _copy_dot_files(self, request: ProvisionRequest) -> None:
        source_dir = self.config.dot_files_dir
        names = await asyncio.to_thread(_list_files, source_dir)
        root = Path(request.root_path)
        # Every copy settles before the first failure is raised.
        results = await asyncio.gather(
            *(
                asyncio.to_thread(shutil.copyfile, source_dir / name, root / f".{name}")
                for name in names
            ),
            return_exceptions=True,
        )
        for outcome in results:
            if isinstance(outcome, BaseException):
                raise outcome

    async def _write_manifest(self, request: ProvisionRequest) -> None:
        await write_manifest(request, Path(request.root_path))

    async def _ensure_node_modules(self, request: ProvisionRequest) -> None:
        await asyncio.to_thread(ensure_dir, Path(request.root_path) / NODE_MODULES_DIR)

    async def _write_database_config(self, request: ProvisionRequest) -> None:
        content = self.renderer.render_database_config(request.client, request.connection)
        await asyncio.to_thread(
            write_text, Path(request.root_path) / DATABASE_CONFIG_PATH, content
        )

    async def _write_docs_config(self, request: ProvisionRequest) -> None:
        content = self.renderer.render_docs_config(request.name)
        await asyncio.to_thread(
            write_text, Path(request.root_path) / DOCS_CONFIG_PATH, content
        )

    # -- Rollback ----------------------------------------------------------

    async def _rollback(self, root: Path) -> OSError | None:
        """Remove *root* entirely. Returns the removal error, if any."""
        if not root.exists():
            return None
        try:
            await asyncio.to_thread(shutil.rmtree, root)
        except OSError as exc:
            print_warning(f"Could not remove {root} after a failed provisioning: {exc}")
            return exc
        return None


def _list_files(directory: Path) -> list[str]:
    return sorted(p.name for p in directory.iterdir() if p.is_file())
