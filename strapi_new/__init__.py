"""strapi-new -- scaffold a new Strapi application.

Quick usage::

    from strapi_new import Config, ProvisionRequest, create_project

    request = ProvisionRequest(root_path="/tmp/my-app", name="My App")
    result = await create_project(request, config=Config())
"""

from strapi_new.config import Config
from strapi_new.events import EventBus, LifecycleEvent
from strapi_new.installer import Installer, InstallError, InstallOutcome
from strapi_new.pipeline import CreateResult, create_project
from strapi_new.scaffolder import (
    DocsConfigError,
    ManifestSpec,
    ProvisionRequest,
    ProvisionResult,
    Provisioner,
    ProvisioningError,
)

__all__ = [
    "Config",
    "CreateResult",
    "DocsConfigError",
    "EventBus",
    "InstallError",
    "InstallOutcome",
    "Installer",
    "LifecycleEvent",
    "ManifestSpec",
    "ProvisionRequest",
    "ProvisionResult",
    "Provisioner",
    "ProvisioningError",
    "create_project",
]
