"""Console reporting for project creation.

Renders lifecycle events as they happen, the recovery guidance shown after a
failed install, and the closing summary of available project commands.
"""

from __future__ import annotations

from pathlib import Path

from rich.panel import Panel

from strapi_new.events import EventPayload, LifecycleEvent
from strapi_new.utils import console, print_error

EVENT_LABELS: dict[LifecycleEvent, str] = {
    LifecycleEvent.FILES_COPIED: "Project files copied",
    LifecycleEvent.PACKAGE_MANIFEST_WRITTEN: "package.json written",
    LifecycleEvent.CONFIG_FILES_WRITTEN: "Configuration files copied",
    LifecycleEvent.INSTALL_STARTING: "Installing dependencies",
    LifecycleEvent.INSTALL_SUCCEEDED: "Dependencies installed",
    LifecycleEvent.INSTALL_FAILED: "Dependencies not installed",
    LifecycleEvent.OPERATION_COMPLETED: "Project created",
}


class ConsoleReporter:
    """Event subscriber printing one status line per lifecycle event."""

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose

    def __call__(self, payload: EventPayload) -> None:
        label = EVENT_LABELS.get(payload.event, payload.event.value)
        if payload.event is LifecycleEvent.INSTALL_FAILED:
            console.print(f"  [red]x[/red] {label}")
        else:
            console.print(f"  [green]+[/green] {label}")
        if self.verbose and payload.error:
            console.print(f"    [dim]{payload.error}[/dim]")


def print_install_guidance(root_path: str | Path, package_manager: str, stderr: str) -> None:
    """Explain a failed install and print the command to retry it."""
    print_error("Error while installing dependencies:")
    if stderr:
        console.print(stderr, markup=False, highlight=False)

    console.print(
        Panel(
            "[bold]Oh, it seems that you encountered errors while installing "
            "dependencies in your project.[/bold]\n"
            "Don't give up, your project was created correctly.\n"
            "Fix the issues mentioned in the installation errors and try to "
            "run the following command:\n\n"
            f"[green]cd {root_path}[/green] && [cyan]{package_manager} install[/cyan]",
            title="[bold]Keep trying![/bold]",
            border_style="yellow",
        )
    )


def print_usage_summary(root_path: str | Path, use_yarn: bool, apidocs: bool) -> None:
    """Print where the project lives and which commands it provides."""
    cmd = "yarn" if use_yarn else "npm run"
    commands: list[tuple[str, str]] = [
        ("develop", "Start Strapi in watch mode."),
        ("start", "Start Strapi without watch mode."),
        ("build", "Build Strapi admin panel."),
        ("strapi", "Display all available commands."),
    ]
    if apidocs:
        commands += [
            (
                "monitor",
                "Start Strapi with Optic monitoring all requests to automatically "
                "generate documentation.",
            ),
            ("spec", "Display current documentation specifications."),
        ]

    console.print()
    console.print(f"Your application was created at [green]{root_path}[/green].")
    console.print()
    console.print("Available commands in your project:")
    console.print()
    for script, description in commands:
        console.print(f"  [cyan]{cmd}[/cyan] {script}")
        console.print(f"  {description}")
        console.print()
    console.print("You can start by doing:")
    console.print()
    console.print(f"  [cyan]cd[/cyan] {root_path}")
    console.print(f"  [cyan]{cmd}[/cyan] develop")
    console.print()
