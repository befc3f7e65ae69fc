"""``package.json`` generation.

The manifest is built from a ``ProvisionRequest`` exactly once and rendered
with a fixed key order and 2-space indentation, so identical requests produce
byte-identical files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from strapi_new.scaffolder.models import ManifestSpec, ProvisionRequest
from strapi_new.utils import render_json, save_json

MANIFEST_FILENAME = "package.json"


def build_manifest(request: ProvisionRequest) -> dict[str, Any]:
    """Return the ``package.json`` mapping for *request*."""
    return ManifestSpec.from_request(request).to_package_json()


def render_manifest(request: ProvisionRequest) -> str:
    """Return the serialised ``package.json`` text for *request*."""
    return render_json(build_manifest(request))


async def write_manifest(request: ProvisionRequest, root: Path) -> Path:
    """Write ``package.json`` into *root* and return its path."""
    return await save_json(build_manifest(request), root / MANIFEST_FILENAME)
