"""Unit tests for the project creation pipeline (strapi_new.pipeline).

Tests cover:
- create_project success, soft install failure and provisioning failure
- Full lifecycle event order
- build_connection / parse_dependency / build_request helpers
- main() CLI argument handling and exit codes
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from strapi_new.config import Config, InstallConfig, ProjectDefaults
from strapi_new.events import EventBus
from strapi_new.pipeline import (
    CreateResult,
    build_connection,
    build_request,
    create_project,
    main,
    parse_dependency,
)
from strapi_new.scaffolder.provisioner import ProvisioningError


# ---------------------------------------------------------------------------
# create_project
# ---------------------------------------------------------------------------


class TestCreateProject:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success(self, make_request, fake_runner, project_root, config):
        runner = fake_runner(stdout=[b"added 1 package\n"])
        events = EventBus()

        result = await create_project(
            make_request(skip_install=False),
            config=config,
            events=events,
            runner=runner,
        )

        assert isinstance(result, CreateResult)
        assert result.status == "created"
        assert result.provision.ok
        assert result.install.ok
        assert len(runner.calls) == 1
        assert events.names == [
            "didCopyProjectFiles",
            "didWritePackageJSON",
            "didCopyConfigurationFiles",
            "willInstallProjectDependencies",
            "didInstallProjectDependencies",
            "didCreateProject",
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_without_progress(self, make_request, fake_runner, config):
        result = await create_project(
            make_request(skip_install=False),
            config=config,
            runner=fake_runner(),
            show_progress=False,
        )
        assert result.install.ok

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_install_failure_is_soft(self, make_request, fake_runner, project_root, config):
        runner = fake_runner(stderr=[b"network timeout"], returncode=1)
        events = EventBus()

        result = await create_project(
            make_request(skip_install=False),
            config=config,
            events=events,
            runner=runner,
        )

        assert result.status == "created_install_pending"
        assert result.install.stderr == "network timeout"
        assert (project_root / "package.json").is_file()
        assert events.names[-2:] == [
            "didNotInstallProjectDependencies",
            "didCreateProject",
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_skip_install(self, provision_request, fake_runner, config):
        runner = fake_runner()
        events = EventBus()
        result = await create_project(provision_request, config=config, events=events, runner=runner)

        assert result.status == "created"
        assert result.install.skipped
        assert runner.calls == []
        assert events.names[-2:] == ["didInstallProjectDependencies", "didCreateProject"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_provisioning_failure_aborts(
        self, make_request, fake_runner, project_root, tmp_path
    ):
        runner = fake_runner()
        events = EventBus()
        config = Config(resources_dir=tmp_path / "missing")

        with pytest.raises(ProvisioningError):
            await create_project(
                make_request(skip_install=False),
                config=config,
                events=events,
                runner=runner,
            )

        assert not project_root.exists()
        assert runner.calls == []
        assert events.names == []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestBuildConnection:
    @pytest.mark.unit
    def test_sqlite(self):
        conn = build_connection("sqlite")
        assert conn == {
            "settings": {"filename": ".tmp/data.db"},
            "options": {"useNullAsDefault": True},
        }

    @pytest.mark.unit
    def test_sqlite_custom_file(self):
        assert build_connection("sqlite", filename="db.sqlite")["settings"] == {
            "filename": "db.sqlite"
        }

    @pytest.mark.unit
    def test_postgres_drops_missing_values(self):
        conn = build_connection("postgres", host="db", port=5432, username="strapi")
        assert conn["settings"] == {
            "host": "db",
            "port": 5432,
            "database": "strapi",
            "username": "strapi",
        }
        assert conn["options"] == {}


class TestParseDependency:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("spec", "expected"),
        [
            ("lodash@4.17.21", ("lodash", "4.17.21")),
            ("lodash", ("lodash", "latest")),
            ("lodash@", ("lodash", "latest")),
            ("@scope/pkg", ("@scope/pkg", "latest")),
            ("@scope/pkg@^1.2.0", ("@scope/pkg", "^1.2.0")),
        ],
    )
    def test_parse(self, spec: str, expected: tuple[str, str]):
        assert parse_dependency(spec) == expected


class TestBuildRequest:
    @pytest.mark.unit
    def test_defaults_from_config(self, tmp_path: Path):
        config = Config(
            install=InstallConfig(use_yarn=True, skip_install=True),
            defaults=ProjectDefaults(strapi_version="3.6.8", apidocs=True),
        )
        request = build_request(tmp_path / "Blog", config)

        assert request.root_path == (tmp_path / "Blog").resolve()
        assert request.name == "Blog"
        assert request.client == "sqlite"
        assert request.strapi_version == "3.6.8"
        assert "strapi-connector-bookshelf" in request.strapi_dependencies
        assert request.use_yarn is True
        assert request.skip_install is True
        assert request.apidocs is True
        assert request.connection == build_connection("sqlite")

    @pytest.mark.unit
    def test_explicit_values_win(self, tmp_path: Path):
        config = Config(install=InstallConfig(use_yarn=True))
        request = build_request(
            tmp_path / "app",
            config,
            name="My App",
            client="mongo",
            connection={"settings": {"host": "m"}},
            dependencies=["lodash@4.0.0", "strapi@3.1.0"],
            use_yarn=False,
        )
        assert request.name == "My App"
        assert request.use_yarn is False
        assert "strapi-connector-mongoose" in request.strapi_dependencies
        assert request.additional_dependencies == {"lodash": "4.0.0", "strapi": "3.1.0"}
        assert request.connection == {"settings": {"host": "m"}}


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestMain:
    @pytest.mark.unit
    def test_creates_project(self, tmp_path: Path):
        target = tmp_path / "cli-app"
        with patch.dict(os.environ, {}, clear=True):
            main([str(target), "--skip-install", "--name", "Cli App", "-d", "lodash@4.17.21"])

        manifest = json.loads((target / "package.json").read_text(encoding="utf-8"))
        assert manifest["name"] == "cli-app"
        assert manifest["dependencies"]["lodash"] == "4.17.21"

    @pytest.mark.unit
    def test_rejects_non_empty_directory(self, tmp_path: Path):
        target = tmp_path / "taken"
        target.mkdir()
        (target / "file.txt").write_text("x", encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            main([str(target), "--skip-install"])
        assert exc_info.value.code == 1
        assert (target / "file.txt").exists()

    @pytest.mark.unit
    def test_provisioning_failure_exit_code(self, tmp_path: Path):
        failing = AsyncMock(side_effect=ProvisioningError("copy_files", "boom"))
        with patch("strapi_new.pipeline.create_project", failing):
            with pytest.raises(SystemExit) as exc_info:
                main([str(tmp_path / "app"), "--skip-install"])
        assert exc_info.value.code == 1

    @pytest.mark.unit
    def test_passes_database_options(self, tmp_path: Path):
        captured = {}

        async def fake_create(request, **kwargs):
            captured["request"] = request
            raise ProvisioningError("copy_files", "stop here")

        with patch("strapi_new.pipeline.create_project", side_effect=fake_create):
            with pytest.raises(SystemExit):
                main([
                    str(tmp_path / "pg-app"),
                    "--dbclient", "postgres",
                    "--dbhost", "db.local",
                    "--dbport", "5433",
                    "--dbname", "blog",
                    "--use-yarn",
                    "--apidocs",
                ])

        request = captured["request"]
        assert request.client == "postgres"
        assert request.connection["settings"]["host"] == "db.local"
        assert request.connection["settings"]["port"] == 5433
        assert request.connection["settings"]["database"] == "blog"
        assert request.use_yarn is True
        assert request.apidocs is True
