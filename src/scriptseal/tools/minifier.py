"""Document finisher interface and the html-minifier-terser adapter.

The finisher sees the fully reassembled document. It must leave script
element contents alone: obfuscated code is already compact and a second
minifier pass can break the obfuscator's string-array decoding.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from scriptseal.tools.npx import npx_command, run_tool

if TYPE_CHECKING:
    from scriptseal.config import MinifierConfig

logger = logging.getLogger(__name__)


class DocumentFinisher(Protocol):
    """Minifies a whole document, treating script contents as opaque."""

    async def __call__(self, document: str) -> str: ...


class PassthroughFinisher:
    """Return the document unchanged (``--no-minify``)."""

    async def __call__(self, document: str) -> str:
        return document


class HtmlMinifierTerser:
    """Minify markup and CSS with the ``html-minifier-terser`` CLI.

    ``--minify-js false`` is always passed; MinifierConfig refuses to be
    built with script minification on.
    """

    def __init__(
        self, config: MinifierConfig, scratch_prefix: str = "scriptseal_"
    ) -> None:
        self.config = config
        self.scratch_prefix = scratch_prefix

    def build_args(self, in_path: Path, out_path: Path) -> list[str]:
        cfg = self.config
        args: list[str] = []
        if cfg.collapse_whitespace:
            args.append("--collapse-whitespace")
        if cfg.remove_comments:
            args.append("--remove-comments")
        args.extend(
            [
                "--minify-css",
                "true" if cfg.minify_css else "false",
                "--minify-js",
                "false",
                *cfg.extra_args,
                "-o",
                str(out_path),
                str(in_path),
            ]
        )
        return npx_command(cfg.npx_command, cfg.package, args)

    async def __call__(self, document: str) -> str:
        with tempfile.TemporaryDirectory(prefix=self.scratch_prefix) as scratch:
            in_path = Path(scratch) / "obf.html"
            out_path = Path(scratch) / "out.html"
            in_path.write_text(document, encoding="utf-8")

            await run_tool(
                self.build_args(in_path, out_path),
                timeout=self.config.timeout_seconds,
            )

            if not out_path.exists():
                msg = f"{self.config.package} produced no output file"
                raise FileNotFoundError(msg)
            minified = out_path.read_text(encoding="utf-8")

        logger.info("Minified document: %d -> %d chars", len(document), len(minified))
        return minified
