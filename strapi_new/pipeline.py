"""strapi-new project creation pipeline.

Drives the two phases of creating a project:

Provision -- copy the skeleton, write ``package.json`` and configuration.
             Any failure removes the target directory and aborts.
Install   -- run the package manager. A failure here is reported with retry
             guidance; the project is still considered created.

Usage::

    python -m strapi_new.pipeline ./my-app
    python -m strapi_new.pipeline ./my-app --dbclient postgres --dbhost db --skip-install
"""

from __future__ import annotations

import asyncio
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rich.markup import escape
from rich.panel import Panel

from strapi_new.config import SQL_CLIENTS, MONGO_CLIENT, Config
from strapi_new.events import EventBus, LifecycleEvent
from strapi_new.installer import DiagnosticsCallback, Installer, InstallOutcome, ProcessRunner
from strapi_new.reporter import ConsoleReporter, print_usage_summary
from strapi_new.scaffolder.models import ProvisionRequest, ProvisionResult
from strapi_new.scaffolder.provisioner import Provisioner, ProvisioningError
from strapi_new.utils import console, create_progress, format_duration, print_error

INSTALL_PREFIX = "[yellow]Installing dependencies:[/yellow]"


@dataclass
class CreateResult:
    """Outcome of a whole project creation."""

    provision: ProvisionResult
    install: InstallOutcome
    duration_seconds: float = 0.0

    @property
    def status(self) -> str:
        """``created`` or ``created_install_pending``."""
        return "created" if self.install.ok else "created_install_pending"


async def create_project(
    request: ProvisionRequest,
    config: Config | None = None,
    events: EventBus | None = None,
    runner: ProcessRunner | None = None,
    capture_stderr: DiagnosticsCallback | None = None,
    show_progress: bool = True,
) -> CreateResult:
    """Provision *request* and install its dependencies.

    Raises:
        ProvisioningError: If provisioning failed; the target is gone.
    """
    start = time.monotonic()
    config = config or Config()
    events = events or EventBus()

    provisioner = Provisioner(config=config, events=events)
    provision_result = await provisioner.provision(request)

    await events.emit(LifecycleEvent.INSTALL_STARTING, request)

    installer = Installer(
        config=config.install,
        runner=runner,
        events=events,
        capture_stderr=capture_stderr,
    )
    if show_progress and not request.skip_install:
        with create_progress() as progress:
            task_id = progress.add_task(INSTALL_PREFIX, total=None)
            installer.on_progress = lambda chunk: progress.update(
                task_id, description=f"{INSTALL_PREFIX} {escape(chunk)}"
            )
            install_outcome = await installer.install(request)
    else:
        install_outcome = await installer.install(request)

    await events.emit(LifecycleEvent.OPERATION_COMPLETED, request)
    print_usage_summary(request.root_path, request.use_yarn, request.apidocs)

    return CreateResult(
        provision=provision_result,
        install=install_outcome,
        duration_seconds=time.monotonic() - start,
    )


# ---------------------------------------------------------------------------
# Request construction
# ---------------------------------------------------------------------------


def build_connection(
    client: str,
    host: str | None = None,
    port: int | None = None,
    database: str | None = None,
    username: str | None = None,
    password: str | None = None,
    filename: str | None = None,
) -> dict[str, Any]:
    """Assemble the ``settings``/``options`` connection map for a client."""
    if client == "sqlite":
        return {
            "settings": {"filename": filename or ".tmp/data.db"},
            "options": {"useNullAsDefault": True},
        }

    settings = {
        "host": host or "127.0.0.1",
        "port": port,
        "database": database or "strapi",
        "username": username,
        "password": password,
    }
    return {
        "settings": {key: value for key, value in settings.items() if value is not None},
        "options": {},
    }


def parse_dependency(spec: str) -> tuple[str, str]:
    """Split ``name@version`` into its parts; scoped names are supported.

    Examples::

        parse_dependency("lodash@4.17.0") -> ("lodash", "4.17.0")
        parse_dependency("@scope/pkg")     -> ("@scope/pkg", "latest")
    """
    name, sep, version = spec.rpartition("@")
    if not sep or not name:
        return spec, "latest"
    return name, version or "latest"


def build_request(
    path: str | Path,
    config: Config,
    name: str | None = None,
    client: str | None = None,
    connection: dict[str, Any] | None = None,
    dependencies: list[str] | None = None,
    apidocs: bool | None = None,
    use_yarn: bool | None = None,
    skip_install: bool | None = None,
) -> ProvisionRequest:
    """Create a ``ProvisionRequest`` with the configured defaults filled in."""
    root = Path(path).resolve()
    client = client or config.defaults.client
    return ProvisionRequest(
        root_path=root,
        name=name or root.name,
        client=client,
        connection=connection if connection is not None else build_connection(client),
        strapi_dependencies=config.defaults.dependencies_for(client),
        additional_dependencies=dict(parse_dependency(d) for d in dependencies or []),
        strapi_version=config.defaults.strapi_version,
        apidocs=config.defaults.apidocs if apidocs is None else apidocs,
        use_yarn=config.install.use_yarn if use_yarn is None else use_yarn,
        skip_install=config.install.skip_install if skip_install is None else skip_install,
    )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``python -m strapi_new.pipeline``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Create a new Strapi application",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m strapi_new.pipeline ./my-app\n"
            "  python -m strapi_new.pipeline ./my-app --dbclient postgres --dbport 5432\n"
            "  python -m strapi_new.pipeline ./my-app --apidocs --use-yarn\n"
        ),
    )
    parser.add_argument("path", help="Directory to create the project in")
    parser.add_argument("--name", default=None, help="Application name (default: directory name)")
    parser.add_argument(
        "--dbclient",
        default=None,
        choices=[*SQL_CLIENTS, MONGO_CLIENT],
        help="Database client (default: sqlite)",
    )
    parser.add_argument("--dbhost", default=None)
    parser.add_argument("--dbport", type=int, default=None)
    parser.add_argument("--dbname", default=None)
    parser.add_argument("--dbusername", default=None)
    parser.add_argument("--dbpassword", default=None)
    parser.add_argument("--dbfile", default=None, help="SQLite database file")
    parser.add_argument(
        "--dependency", "-d",
        action="append",
        default=[],
        metavar="NAME@VERSION",
        help="Additional dependency (repeatable)",
    )
    parser.add_argument("--apidocs", action="store_true", default=None)
    parser.add_argument("--use-yarn", action="store_true", default=None)
    parser.add_argument("--skip-install", action="store_true", default=None)

    args = parser.parse_args(argv)

    target = Path(args.path)
    if target.exists() and (not target.is_dir() or any(target.iterdir())):
        console.print(
            f"[bold red]Error:[/bold red] {target} already exists and is not an empty directory"
        )
        sys.exit(1)

    config = Config.from_env()
    client = args.dbclient or config.defaults.client
    connection = build_connection(
        client,
        host=args.dbhost,
        port=args.dbport,
        database=args.dbname,
        username=args.dbusername,
        password=args.dbpassword,
        filename=args.dbfile,
    )
    request = build_request(
        target,
        config,
        name=args.name,
        client=client,
        connection=connection,
        dependencies=args.dependency,
        apidocs=args.apidocs,
        use_yarn=args.use_yarn,
        skip_install=args.skip_install,
    )

    console.print(
        Panel(
            f"[bold bright_cyan]strapi-new[/bold bright_cyan]\n"
            f"Project : {request.name}\n"
            f"Path    : {request.root_path}\n"
            f"Database: {request.client}",
            border_style="bright_cyan",
        )
    )

    events = EventBus([ConsoleReporter()])
    try:
        result = asyncio.run(create_project(request, config=config, events=events))
    except ProvisioningError as exc:
        print_error(str(exc))
        sys.exit(1)

    console.print(f"[dim]Done in {format_duration(result.duration_seconds)}.[/dim]")


if __name__ == "__main__":
    main()
