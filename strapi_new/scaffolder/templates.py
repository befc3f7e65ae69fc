"""Jinja2 template rendering for generated configuration files.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``strapi_new/scaffolder/templates/`` directory and renders the environment
specific files of a new project: the database configuration and the optional
Optic API-monitoring config. Renderers are pure functions of their inputs.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from strapi_new.config import MONGO_CLIENT
from strapi_new.scaffolder.models import thaw
from strapi_new.utils import kebab_case


_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

DATABASE_CONFIG_TEMPLATE = "database.js.j2"
DOCS_CONFIG_TEMPLATE = "optic.yml.j2"


class TemplateRenderer:
    """Renders the configuration templates of a new project."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters["to_js"] = _to_js_filter

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context."""
        template = self.env.get_template(template_path)
        return template.render(**context)

    # -- Project files -----------------------------------------------------

    def render_database_config(self, client: str, connection: Mapping[str, Any]) -> str:
        """Render ``config/database.js`` for a client and connection map.

        *connection* may carry ``settings`` and ``options`` sub-maps. A flat
        map without those keys is treated as settings.
        """
        return self.render(DATABASE_CONFIG_TEMPLATE, database_context(client, connection))

    def render_docs_config(self, name: str) -> str:
        """Render ``optic.yml`` for the application *name*."""
        return self.render(DOCS_CONFIG_TEMPLATE, {"project_name": kebab_case(name)})


def database_context(client: str, connection: Mapping[str, Any]) -> dict[str, Any]:
    """Build the template context for the database configuration."""
    if "settings" in connection or "options" in connection:
        settings = thaw(connection.get("settings") or {})
        options = thaw(connection.get("options") or {})
    else:
        settings = thaw(connection)
        options = {}

    settings = {"client": client, **settings}
    connector = "mongoose" if client == MONGO_CLIENT else "bookshelf"
    return {"connector": connector, "settings": settings, "options": options}


def _to_js_filter(value: Any) -> str:
    """Serialise a value as a JavaScript literal (JSON is a subset)."""
    return json.dumps(value, indent=2, ensure_ascii=False)
