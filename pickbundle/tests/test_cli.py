from __future__ import annotations

from click.testing import CliRunner

from pickbundle import __version__
from pickbundle.cli.commands.pick import resolve_settings
from pickbundle.cli.main import cli
from pickbundle.config import get_settings


def test_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_config_show(monkeypatch) -> None:
    monkeypatch.setenv("PICKBUNDLE_MAX_SELECTIONS", "12")
    get_settings.cache_clear()
    try:
        result = CliRunner().invoke(cli, ["config", "show"])
    finally:
        get_settings.cache_clear()

    assert result.exit_code == 0
    assert "Picker Settings" in result.output
    assert "12" in result.output


def test_inspect_requires_a_selector() -> None:
    result = CliRunner().invoke(cli, ["inspect", "https://example.test/"])

    assert result.exit_code != 0
    assert "--select" in result.output


def test_command_line_overrides_environment(monkeypatch) -> None:
    monkeypatch.setenv("PICKBUNDLE_CLIPBOARD", "system")
    get_settings.cache_clear()
    try:
        settings = resolve_settings(dialect="typescript", headless=True)
    finally:
        get_settings.cache_clear()

    assert settings.skeleton_dialect == "typescript"
    assert settings.headless is True
    assert settings.clipboard == "system"


def test_inspect_reports_export_failures(monkeypatch) -> None:
    from pickbundle.browser import InspectExportError
    from pickbundle.cli.commands import inspect as inspect_module

    async def failing(*args, **kwargs):
        raise InspectExportError("Could not export the bundle for 1 selected element(s)")

    monkeypatch.setattr(inspect_module, "_inspect", failing)
    result = CliRunner().invoke(cli, ["inspect", "https://example.test/", "--select", "h1"])

    assert result.exit_code != 0
    assert "Could not export the bundle" in result.output
    assert "No element matched" not in result.output


def test_inspect_reports_missing_matches(monkeypatch) -> None:
    from pickbundle.cli.commands import inspect as inspect_module

    async def nothing(*args, **kwargs):
        return None, ""

    monkeypatch.setattr(inspect_module, "_inspect", nothing)
    result = CliRunner().invoke(cli, ["inspect", "https://example.test/", "--select", "h1"])

    assert result.exit_code != 0
    assert "No element matched the given selectors" in result.output
