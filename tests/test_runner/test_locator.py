"""Tests for CLI discovery and process environments (launchpad.runner.locator)."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from launchpad.config import LocatorConfig
from launchpad.models import Provider
from launchpad.runner.locator import (
    NETLIFY_SCRIPT,
    CLICommand,
    CLILocator,
    build_environment,
    platform_key,
    probe_version,
)


def _touch(path: Path, mode: int = 0o644) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n", encoding="utf-8")
    path.chmod(mode)
    return path


# ---------------------------------------------------------------------------
# CLICommand / platform
# ---------------------------------------------------------------------------


class TestCLICommand:
    @pytest.mark.unit
    def test_native_binary(self):
        cmd = CLICommand(executable="/opt/railway")
        assert cmd.args("up", "--detach") == ["up", "--detach"]
        assert cmd.path == "/opt/railway"

    @pytest.mark.unit
    def test_interpreted_script(self):
        cmd = CLICommand(executable="node", base_args=("/app/run.js",))
        assert cmd.args("deploy") == ["/app/run.js", "deploy"]
        assert cmd.path == "/app/run.js"


class TestPlatformKey:
    @pytest.mark.unit
    def test_shape(self):
        key = platform_key()
        assert key.startswith(f"{sys.platform}-")
        assert key.split("-", 1)[1]


# ---------------------------------------------------------------------------
# build_environment
# ---------------------------------------------------------------------------


class TestBuildEnvironment:
    @pytest.mark.unit
    def test_railway_uses_account_token_only(self):
        base = {"PATH": "/usr/bin", "RAILWAY_TOKEN": "project-scoped"}
        env = build_environment(Provider.RAILWAY, "acct-token", base_env=base)
        assert env["RAILWAY_API_TOKEN"] == "acct-token"
        assert "RAILWAY_TOKEN" not in env
        assert env["CI"] == "true"
        assert env["PATH"] == "/usr/bin"
        assert "NETLIFY_AUTH_TOKEN" not in env

    @pytest.mark.unit
    def test_netlify(self):
        env = build_environment(Provider.NETLIFY, "nf-token", base_env={"PATH": "/bin"})
        assert env["NETLIFY_AUTH_TOKEN"] == "nf-token"
        assert env["NETLIFY_SITE_ID"] == ""
        assert env["NODE_ENV"] == "production"
        assert env["CI"] == "true"
        assert "RAILWAY_API_TOKEN" not in env

    @pytest.mark.unit
    def test_base_env_not_mutated(self):
        base = {"RAILWAY_TOKEN": "x"}
        build_environment(Provider.RAILWAY, "t", base_env=base)
        assert base == {"RAILWAY_TOKEN": "x"}

    @pytest.mark.unit
    def test_defaults_to_process_environment(self, monkeypatch):
        monkeypatch.setenv("LAUNCHPAD_AMBIENT", "1")
        env = build_environment(Provider.NETLIFY, "t")
        assert env["LAUNCHPAD_AMBIENT"] == "1"


# ---------------------------------------------------------------------------
# CLILocator
# ---------------------------------------------------------------------------


class TestCLILocator:
    @pytest.mark.unit
    def test_development_railway_binary(self, tmp_path: Path):
        binary = _touch(tmp_path / "resources" / "binaries" / platform_key() / "railway")
        locator = CLILocator(LocatorConfig(app_root=tmp_path))
        assert locator.locate(Provider.RAILWAY) == binary

    @pytest.mark.unit
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_railway_binary_made_executable(self, tmp_path: Path):
        binary = _touch(tmp_path / "resources" / "binaries" / platform_key() / "railway")
        assert not os.access(binary, os.X_OK)
        CLILocator(LocatorConfig(app_root=tmp_path)).locate(Provider.RAILWAY)
        assert os.access(binary, os.X_OK)

    @pytest.mark.unit
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_chmod_failure_is_not_fatal(self, tmp_path: Path):
        binary = _touch(tmp_path / "resources" / "binaries" / platform_key() / "railway")
        locator = CLILocator(LocatorConfig(app_root=tmp_path))

        with patch("launchpad.runner.locator.os.access", return_value=False), \
                patch.object(Path, "chmod", side_effect=OSError("read-only file system")), \
                patch("launchpad.runner.locator.print_error") as mock_error:
            assert locator.locate(Provider.RAILWAY) == binary

        mock_error.assert_called_once()
        assert "read-only file system" in mock_error.call_args.args[0]

    @pytest.mark.unit
    def test_packaged_railway_binary(self, tmp_path: Path):
        name = "railway.exe" if sys.platform == "win32" else "railway"
        binary = _touch(tmp_path / "res" / "binaries" / name)
        locator = CLILocator(
            LocatorConfig(app_root=tmp_path / "app", resources_path=tmp_path / "res", packaged=True)
        )
        assert locator.locate(Provider.RAILWAY) == binary

    @pytest.mark.unit
    def test_explicit_override_wins(self, tmp_path: Path):
        _touch(tmp_path / "resources" / "binaries" / platform_key() / "railway")
        override = _touch(tmp_path / "custom" / "railway")
        locator = CLILocator(LocatorConfig(app_root=tmp_path, railway_cli=override))
        assert locator.locate(Provider.RAILWAY) == override

    @pytest.mark.unit
    def test_development_netlify_script(self, tmp_path: Path):
        script = _touch(tmp_path / NETLIFY_SCRIPT)
        locator = CLILocator(LocatorConfig(app_root=tmp_path))
        assert locator.locate(Provider.NETLIFY) == script

    @pytest.mark.unit
    def test_packaged_netlify_prefers_unpacked(self, tmp_path: Path):
        unpacked = _touch(tmp_path / "app.asar.unpacked" / NETLIFY_SCRIPT)
        _touch(tmp_path / "app" / NETLIFY_SCRIPT)
        locator = CLILocator(LocatorConfig(resources_path=tmp_path, packaged=True))
        assert locator.locate(Provider.NETLIFY) == unpacked

    @pytest.mark.unit
    def test_not_found(self, tmp_path: Path):
        locator = CLILocator(LocatorConfig(app_root=tmp_path))
        assert locator.locate(Provider.RAILWAY) is None
        assert locator.locate(Provider.NETLIFY) is None

    @pytest.mark.unit
    def test_command_for_netlify_uses_node(self, tmp_path: Path):
        locator = CLILocator(LocatorConfig(node_binary="/opt/node/bin/node"))
        cmd = locator.command_for(Provider.NETLIFY, tmp_path / "run.js")
        assert cmd.executable == "/opt/node/bin/node"
        assert cmd.base_args == (str(tmp_path / "run.js"),)

    @pytest.mark.unit
    def test_command_for_railway_is_direct(self, tmp_path: Path):
        cmd = CLILocator(LocatorConfig()).command_for(Provider.RAILWAY, tmp_path / "railway")
        assert cmd.executable == str(tmp_path / "railway")
        assert cmd.base_args == ()

    @pytest.mark.unit
    def test_node_binary_falls_back_to_path_lookup(self, monkeypatch):
        monkeypatch.delenv("NODE_PATH", raising=False)
        monkeypatch.setattr(os.path, "exists", lambda _p: False)
        assert CLILocator(LocatorConfig()).node_binary() == "node"


# ---------------------------------------------------------------------------
# probe_version
# ---------------------------------------------------------------------------


class TestProbeVersion:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_reports_version(self):
        cmd = CLICommand(sys.executable, ("-c", "print('railway 3.5.0')"))
        assert await probe_version(cmd) == "v3.5.0"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_non_zero_exit(self):
        cmd = CLICommand(sys.executable, ("-c", "import sys; sys.exit(1)"))
        assert await probe_version(cmd) is None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path: Path):
        assert await probe_version(CLICommand(str(tmp_path / "nope"))) is None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_timeout(self):
        cmd = CLICommand(sys.executable, ("-c", "import time; time.sleep(5)"))
        assert await probe_version(cmd, timeout=0.2) is None
