"""Tests for pyproject.toml and package installation."""
from __future__ import annotations

import subprocess
import sys
import tomllib
from pathlib import Path

PYPROJECT = Path(__file__).parent.parent / "pyproject.toml"


class TestPackageInstallation:
    """Test that the package is properly installed."""

    def test_package_importable(self):
        """Package can be imported without PYTHONPATH."""
        import tta_bot
        assert tta_bot is not None

    def test_version_defined(self):
        """Package has __version__ attribute."""
        import tta_bot
        assert isinstance(tta_bot.__version__, str)
        assert len(tta_bot.__version__) > 0

    def test_core_modules_importable(self):
        """Core modules can be imported."""
        from tta_bot.core import config, errors, logging, metrics
        from tta_bot.api import routes, schemas
        from tta_bot.bot import handler, poller, telegram
        from tta_bot.services import audio_service
        from tta_bot.tts import speech, storage

        for module in (config, errors, logging, metrics, routes, schemas,
                       handler, poller, telegram, audio_service, speech, storage):
            assert module is not None


class TestCLIEntryPoint:
    """Test the CLI entry point."""

    def test_cli_help_exits_zero(self):
        """CLI --help exits with code 0."""
        result = subprocess.run(
            [sys.executable, "-m", "tta_bot.cli", "--help"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "text-to-audio" in result.stdout


class TestPyprojectToml:
    """Test pyproject.toml configuration."""

    def test_pyproject_valid_toml(self):
        data = tomllib.loads(PYPROJECT.read_text())
        assert data["project"]["name"] == "tta-bot"
        assert data["project"]["scripts"]["tta-bot"] == "tta_bot.cli:main"

    def test_pyproject_has_dependencies(self):
        """pyproject.toml declares every runtime library the package imports."""
        data = tomllib.loads(PYPROJECT.read_text())

        deps = data["project"].get("dependencies", [])
        dep_names = [d.split(">=")[0].split("[")[0] for d in deps]
        for name in ("fastapi", "uvicorn", "pydantic", "pyyaml", "prometheus_client",
                     "psutil", "openai", "httpx"):
            assert name in dep_names

    def test_pytest_in_test_extra(self):
        data = tomllib.loads(PYPROJECT.read_text())
        test_deps = data["project"]["optional-dependencies"]["test"]
        assert any(d.startswith("pytest") for d in test_deps)
