"""Pydantic data models for project provisioning.

Models:
- ProvisionRequest: Immutable input to one project creation.
- ManifestSpec: The computed ``package.json`` content.
- StepOutcome: Result of a single provisioning step.
- ProvisionResult: Aggregate result of the provisioning phase.
"""

from __future__ import annotations

import uuid as uuid_lib
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from strapi_new.utils import kebab_case


OPTIC_CLI_PACKAGE = "@useoptic/cli"


class ProvisionRequest(BaseModel):
    """Everything needed to scaffold one project.

    Frozen: once constructed no field can be reassigned, and the container
    fields are deep copies held as read-only mappings and tuples.
    """

    model_config = ConfigDict(frozen=True)

    root_path: Path = Field(..., description="Target directory for the new project")
    name: str = Field(..., min_length=1, description="Application name")
    uuid: str = Field(default_factory=lambda: str(uuid_lib.uuid4()))
    client: str = Field(default="sqlite", description="Database client identifier")
    connection: Mapping[str, Any] = Field(
        default_factory=dict,
        validate_default=True,
        description="Opaque database connection parameters",
    )
    strapi_dependencies: tuple[str, ...] = Field(
        default=(),
        description="Dependency names pinned to strapi_version",
    )
    additional_dependencies: Mapping[str, str] = Field(
        default_factory=dict,
        validate_default=True,
        description="Extra name -> version spec pairs; win over pinned entries",
    )
    strapi_version: str = Field(default="3.0.0")
    apidocs: bool = Field(default=False, description="Generate the Optic docs config")
    use_yarn: bool = Field(default=False)
    skip_install: bool = Field(default=False)

    @field_validator("connection", "additional_dependencies")
    @classmethod
    def _freeze_mapping(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return freeze(value)

    @property
    def project_name(self) -> str:
        """Kebab-cased application name used in the manifest and docs config."""
        return kebab_case(self.name)

    @property
    def package_manager(self) -> str:
        """Display name of the package manager the user would run."""
        return "yarn" if self.use_yarn else "npm"


def freeze(value: Any) -> Any:
    """Deep-copy *value* into read-only mappings and tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of ``freeze``: plain dicts and lists, safe to serialise."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [thaw(item) for item in value]
    return value


class ManifestSpec(BaseModel):
    """Computed ``package.json`` content for a request."""

    model_config = ConfigDict(frozen=True)

    name: str
    uuid: str
    scripts: dict[str, str]
    dependencies: dict[str, str]

    @classmethod
    def from_request(cls, request: ProvisionRequest) -> "ManifestSpec":
        """Derive the manifest from *request*.

        Pinned dependencies get ``strapi_version``; additional dependencies
        are merged afterwards and therefore win on a name collision.
        """
        scripts = {
            "develop": "strapi develop",
            "start": "strapi start",
            "build": "strapi build",
            "strapi": "strapi",
        }
        if request.apidocs:
            scripts["monitor"] = "api start"
            scripts["spec"] = "api spec"

        dependencies = {name: request.strapi_version for name in request.strapi_dependencies}
        dependencies.update(request.additional_dependencies)
        if request.apidocs:
            dependencies[OPTIC_CLI_PACKAGE] = "latest"

        return cls(
            name=request.project_name,
            uuid=request.uuid,
            scripts=scripts,
            dependencies=dependencies,
        )

    def to_package_json(self) -> dict[str, Any]:
        """Return the full manifest in its on-disk key order."""
        return {
            "name": self.name,
            "private": True,
            "version": "0.1.0",
            "description": "A Strapi application",
            "scripts": dict(self.scripts),
            "devDependencies": {},
            "dependencies": dict(self.dependencies),
            "author": {"name": "A Strapi developer"},
            "strapi": {"uuid": self.uuid},
            "engines": {"node": ">=10.0.0", "npm": ">=6.0.0"},
            "license": "MIT",
        }


class StepOutcome(BaseModel):
    """Result of one provisioning step."""

    step: str
    ok: bool = True
    error: str | None = None


class ProvisionResult(BaseModel):
    """Outcome of the provisioning phase."""

    root_path: Path
    steps: list[StepOutcome] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.steps) and all(s.ok for s in self.steps)

    @property
    def step_names(self) -> list[str]:
        return [s.step for s in self.steps]
