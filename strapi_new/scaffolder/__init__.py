"""Project scaffolding -- builds the on-disk skeleton of a new application.

Quick usage::

    from strapi_new.scaffolder import Provisioner, ProvisionRequest

    request = ProvisionRequest(root_path="/tmp/my-app", name="my-app")
    result = await Provisioner().provision(request)
"""

from strapi_new.scaffolder.manifest import build_manifest, render_manifest
from strapi_new.scaffolder.models import (
    ManifestSpec,
    ProvisionRequest,
    ProvisionResult,
    StepOutcome,
)
from strapi_new.scaffolder.provisioner import (
    DocsConfigError,
    Provisioner,
    ProvisioningError,
)
from strapi_new.scaffolder.templates import TemplateRenderer

__all__ = [
    "DocsConfigError",
    "ManifestSpec",
    "ProvisionRequest",
    "ProvisionResult",
    "Provisioner",
    "ProvisioningError",
    "StepOutcome",
    "TemplateRenderer",
    "build_manifest",
    "render_manifest",
]
