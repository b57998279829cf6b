"""Command-line entry point for the obfuscating HTML build.

Usage:
    uv run scriptseal                          # index.dev.html -> index.html
    uv run scriptseal src/page.html dist/page.html
    uv run scriptseal --concurrency 4 --preset high-obfuscation
    uv run scriptseal --no-minify              # obfuscate only
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from scriptseal import __version__, setup_logging
from scriptseal.errors import BuildError

if TYPE_CHECKING:
    from scriptseal.config import Settings

console = Console()
logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        msg = f"must be at least 1, got {number}"
        raise argparse.ArgumentTypeError(msg)
    return number


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        msg = f"must be greater than 0, got {number}"
        raise argparse.ArgumentTypeError(msg)
    return number


def _build_parser() -> argparse.ArgumentParser:
    """Build argparse parser for the build command."""
    parser = argparse.ArgumentParser(
        prog="scriptseal",
        description=(
            "Obfuscate inline <script> blocks in an HTML page and minify the "
            "markup without re-minifying the obfuscated code."
        ),
    )
    parser.add_argument(
        "input",
        nargs="?",
        type=Path,
        help="Source HTML (default: BUILD__INPUT_PATH or index.dev.html)",
    )
    parser.add_argument(
        "output",
        nargs="?",
        type=Path,
        help="Output HTML (default: BUILD__OUTPUT_PATH or index.html)",
    )
    parser.add_argument(
        "--concurrency",
        type=_positive_int,
        default=None,
        help="Scripts obfuscated in parallel (default: 1)",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_float,
        default=None,
        help="Seconds allowed per external tool call",
    )
    parser.add_argument(
        "--preset",
        default=None,
        help="javascript-obfuscator --options-preset (default: medium-obfuscation)",
    )
    parser.add_argument(
        "--no-minify",
        action="store_true",
        help="Skip html-minifier-terser; write the reassembled page as-is",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Also write a detailed rotating log file here",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return a copy of *settings* with command-line overrides applied."""
    build_update: dict[str, object] = {}
    if args.input is not None:
        build_update["input_path"] = args.input
    if args.output is not None:
        build_update["output_path"] = args.output
    if args.concurrency is not None:
        build_update["concurrency"] = args.concurrency
    if args.log_dir is not None:
        build_update["log_dir"] = args.log_dir

    obfuscator_update: dict[str, object] = {}
    minifier_update: dict[str, object] = {}
    if args.preset is not None:
        obfuscator_update["options_preset"] = args.preset
    if args.timeout is not None:
        obfuscator_update["timeout_seconds"] = args.timeout
        minifier_update["timeout_seconds"] = args.timeout

    return settings.model_copy(
        update={
            "build": settings.build.model_copy(update=build_update),
            "obfuscator": settings.obfuscator.model_copy(update=obfuscator_update),
            "minifier": settings.minifier.model_copy(update=minifier_update),
        }
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: build the obfuscated, minified page."""
    from scriptseal.config import get_settings
    from scriptseal.pipeline import build_file
    from scriptseal.tools.minifier import PassthroughFinisher

    args = _build_parser().parse_args(argv)

    try:
        settings = _apply_overrides(get_settings(), args)
    except ValidationError as exc:
        console.print(f"[red]Invalid configuration:[/]\n{escape(str(exc))}")
        sys.exit(1)

    setup_logging(settings.build.log_dir, verbose=args.verbose)

    finish = PassthroughFinisher() if args.no_minify else None
    input_path = settings.build.input_path
    output_path = settings.build.output_path

    try:
        report = asyncio.run(
            build_file(input_path, output_path, settings, finish=finish)
        )
    except BuildError as exc:
        logger.debug("Build failed", exc_info=True)
        console.print(f"[red]Error ({exc.stage}):[/] {escape(str(exc))}")
        sys.exit(1)

    console.print(
        f"[green]Generated[/] {escape(str(report.output_path))} "
        f"from {escape(str(report.input_path))}."
    )
    console.print(
        f"[dim]{report.transformed} script(s) obfuscated, "
        f"{report.passed_through} passed through, "
        f"{report.input_chars} -> {report.output_chars} chars "
        f"in {report.elapsed_seconds:.2f}s[/]"
    )


if __name__ == "__main__":
    main()
