"""Tests for the scriptseal command-line entry point."""

from __future__ import annotations

import argparse
from pathlib import Path
from unittest.mock import patch

import pytest

from scriptseal.cli import _apply_overrides, _build_parser, main
from scriptseal.config import Settings
from tests.helpers.fakes import RecordingTransformer


@pytest.fixture
def fake_tools():
    """Replace both Node tools with in-process fakes."""
    transformer = RecordingTransformer()

    async def _finish(document: str) -> str:
        return document.replace("\n", "")

    with (
        patch("scriptseal.pipeline.JavaScriptObfuscator", return_value=transformer),
        patch("scriptseal.pipeline.HtmlMinifierTerser", return_value=_finish),
        patch("scriptseal.cli.setup_logging"),
    ):
        yield transformer


class TestApplyOverrides:
    """Tests for _apply_overrides()."""

    def test_no_flags_keeps_settings(self, settings: Settings) -> None:
        args = _build_parser().parse_args([])
        updated = _apply_overrides(settings, args)
        assert updated.build == settings.build
        assert updated.obfuscator == settings.obfuscator

    def test_flags_override(self, settings: Settings) -> None:
        args = _build_parser().parse_args(
            [
                "src.html",
                "out.html",
                "--concurrency",
                "3",
                "--timeout",
                "12.5",
                "--preset",
                "low-obfuscation",
            ]
        )
        updated = _apply_overrides(settings, args)
        assert updated.build.input_path == Path("src.html")
        assert updated.build.output_path == Path("out.html")
        assert updated.build.concurrency == 3
        assert updated.obfuscator.options_preset == "low-obfuscation"
        assert updated.obfuscator.timeout_seconds == 12.5
        assert updated.minifier.timeout_seconds == 12.5
        # Source settings are untouched
        assert settings.build.concurrency == 1


class TestParser:
    """Argument validation."""

    @pytest.mark.parametrize("flag", [["--concurrency", "0"], ["--timeout", "-1"]])
    def test_rejects_non_positive(self, flag: list[str]) -> None:
        with pytest.raises(SystemExit) as excinfo:
            _build_parser().parse_args(flag)
        assert excinfo.value.code == 2

    def test_defaults_are_none(self) -> None:
        args = _build_parser().parse_args([])
        assert isinstance(args, argparse.Namespace)
        assert args.input is None
        assert args.output is None
        assert args.no_minify is False


class TestMain:
    """End-to-end runs of main() with fake tools."""

    def test_default_paths(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
        fake_tools: RecordingTransformer,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "index.dev.html").write_text(
            "<p>\nhi</p>\n<script>alert(1)</script>", encoding="utf-8"
        )

        main([])

        output = (tmp_path / "index.html").read_text(encoding="utf-8")
        assert output == "<p>hi</p><script>OBF(alert(1))</script>"
        assert fake_tools.calls == ["alert(1)"]
        assert "Generated" in capsys.readouterr().out

    def test_no_minify(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        fake_tools: RecordingTransformer,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        source = tmp_path / "page.html"
        source.write_text("<p>\nhi</p>\n<script>go()</script>", encoding="utf-8")

        main(["page.html", "built.html", "--no-minify"])

        assert (tmp_path / "built.html").read_text(encoding="utf-8") == (
            "<p>\nhi</p>\n<script>OBF(go())</script>"
        )

    def test_failure_exits_nonzero_without_output(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
        fake_tools: RecordingTransformer,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "index.dev.html").write_text(
            '<script src="app.js"></script>', encoding="utf-8"
        )

        with pytest.raises(SystemExit) as excinfo:
            main([])

        assert excinfo.value.code == 1
        assert not (tmp_path / "index.html").exists()
        assert "No inline <script> blocks" in capsys.readouterr().out

    def test_missing_input(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
        fake_tools: RecordingTransformer,
    ) -> None:
        monkeypatch.chdir(tmp_path)

        with pytest.raises(SystemExit) as excinfo:
            main(["missing.html"])

        assert excinfo.value.code == 1
        assert "Input not found" in capsys.readouterr().out

    def test_undecodable_input(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
        fake_tools: RecordingTransformer,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "index.dev.html").write_bytes(b"<script>a()</script>\xff")

        with pytest.raises(SystemExit) as excinfo:
            main([])

        assert excinfo.value.code == 1
        assert "Error (input)" in capsys.readouterr().out
        assert fake_tools.calls == []

    def test_invalid_environment(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("MINIFIER__MINIFY_JS", "true")

        with pytest.raises(SystemExit) as excinfo:
            main([])

        assert excinfo.value.code == 1
        assert "Invalid configuration" in capsys.readouterr().out
