"""strapi-new configuration.

Centralised, typed configuration for the generator. All settings use Pydantic
v2 models so they can be validated at construction time and serialised to/from
JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


_DEFAULT_RESOURCES_DIR = Path(__file__).parent / "scaffolder" / "resources"

# Database clients handled by the bookshelf (SQL) connector.
SQL_CLIENTS: tuple[str, ...] = ("sqlite", "postgres", "mysql")
MONGO_CLIENT = "mongo"

CORE_DEPENDENCIES: list[str] = [
    "strapi",
    "strapi-admin",
    "strapi-utils",
    "strapi-plugin-content-type-builder",
    "strapi-plugin-content-manager",
    "strapi-plugin-users-permissions",
    "strapi-plugin-email",
    "strapi-plugin-upload",
]


class InstallConfig(BaseModel):
    """Settings for the dependency installation phase."""

    npm_binary: str = Field(default="npm")
    yarn_binary: str = Field(default="yarnpkg")
    arguments: list[str] = Field(
        default_factory=lambda: ["install", "--production", "--no-optional"],
        description="Fixed argument list handed to the package manager",
    )
    timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds before the install process is killed (None waits forever)",
    )
    use_yarn: bool = Field(default=False)
    skip_install: bool = Field(default=False)

    def binary_for(self, use_yarn: bool) -> str:
        """Return the package-manager executable for the given choice."""
        return self.yarn_binary if use_yarn else self.npm_binary


class ProjectDefaults(BaseModel):
    """Values applied to every generated project unless overridden."""

    strapi_version: str = Field(default="3.0.0")
    client: str = Field(default="sqlite")
    apidocs: bool = Field(default=False)

    def dependencies_for(self, client: str) -> list[str]:
        """Return the pinned dependency names for a database client.

        The core packages are always present; the connector is picked from the
        client family (``mongo`` uses mongoose, everything else bookshelf).
        """
        connector = (
            "strapi-connector-mongoose"
            if client == MONGO_CLIENT
            else "strapi-connector-bookshelf"
        )
        return [*CORE_DEPENDENCIES, connector]


class Config(BaseModel):
    """Global strapi-new configuration.

    Instances are typically created once by the CLI entry point and then passed
    to ``create_project``.
    """

    resources_dir: Path = Field(default=_DEFAULT_RESOURCES_DIR)
    install: InstallConfig = Field(default_factory=InstallConfig)
    defaults: ProjectDefaults = Field(default_factory=ProjectDefaults)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def files_dir(self) -> Path:
        """Static asset tree copied verbatim into each project."""
        return self.resources_dir / "files"

    @property
    def dot_files_dir(self) -> Path:
        """Hidden-file templates, stored without their leading dot."""
        return self.resources_dir / "dot-files"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file.

        Returns:
            The path where the file was written.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            STRAPI_NEW_VERSION, STRAPI_NEW_RESOURCES_DIR,
            STRAPI_NEW_USE_YARN, STRAPI_NEW_SKIP_INSTALL,
            STRAPI_NEW_INSTALL_TIMEOUT.
        """
        install_kwargs: dict[str, Any] = {}
        if os.environ.get("STRAPI_NEW_USE_YARN"):
            install_kwargs["use_yarn"] = _env_flag("STRAPI_NEW_USE_YARN")
        if os.environ.get("STRAPI_NEW_SKIP_INSTALL"):
            install_kwargs["skip_install"] = _env_flag("STRAPI_NEW_SKIP_INSTALL")
        if os.environ.get("STRAPI_NEW_INSTALL_TIMEOUT"):
            install_kwargs["timeout"] = float(os.environ["STRAPI_NEW_INSTALL_TIMEOUT"])

        defaults_kwargs: dict[str, Any] = {}
        if os.environ.get("STRAPI_NEW_VERSION"):
            defaults_kwargs["strapi_version"] = os.environ["STRAPI_NEW_VERSION"]

        kwargs: dict[str, Any] = {}
        if os.environ.get("STRAPI_NEW_RESOURCES_DIR"):
            kwargs["resources_dir"] = Path(os.environ["STRAPI_NEW_RESOURCES_DIR"])

        return cls(
            install=InstallConfig(**install_kwargs),
            defaults=ProjectDefaults(**defaults_kwargs),
            **kwargs,
        )


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")
