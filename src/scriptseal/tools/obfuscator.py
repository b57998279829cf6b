"""Script transformer interface and the javascript-obfuscator adapter.

The pipeline only needs "payload in, transformed payload out". Anything
implementing ScriptTransformer can stand in for the npx adapter, which is
how the tests drive the pipeline without Node.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from scriptseal.tools.npx import npx_command, run_tool

if TYPE_CHECKING:
    from scriptseal.config import ObfuscatorConfig

logger = logging.getLogger(__name__)


class ScriptTransformer(Protocol):
    """Maps one inline script payload to its transformed form."""

    async def __call__(self, payload: str) -> str:
        """Transform *payload*.

        Raises:
            Exception: Any failure; the pipeline aborts the whole build.
        """
        ...


def _flag(value: bool) -> str:
    return "true" if value else "false"


class JavaScriptObfuscator:
    """Obfuscate a payload with the ``javascript-obfuscator`` CLI.

    Its ``--parse-html`` mode would handle inline scripts directly, but the
    CLI only accepts .js/.mjs/.cjs inputs, so each payload goes through a
    scratch .js file.
    """

    def __init__(
        self, config: ObfuscatorConfig, scratch_prefix: str = "scriptseal_"
    ) -> None:
        self.config = config
        self.scratch_prefix = scratch_prefix

    def build_args(self, in_path: Path, out_path: Path) -> list[str]:
        cfg = self.config
        args = [
            str(in_path),
            "--output",
            str(out_path),
            "--target",
            cfg.target,
            "--options-preset",
            cfg.options_preset,
            "--compact",
            _flag(cfg.compact),
            "--string-array-encoding",
            cfg.string_array_encoding,
            *cfg.extra_args,
        ]
        return npx_command(cfg.npx_command, cfg.package, args)

    async def __call__(self, payload: str) -> str:
        with tempfile.TemporaryDirectory(prefix=self.scratch_prefix) as scratch:
            in_path = Path(scratch) / "in.js"
            out_path = Path(scratch) / "out.js"
            in_path.write_text(payload, encoding="utf-8")

            await run_tool(
                self.build_args(in_path, out_path),
                timeout=self.config.timeout_seconds,
            )

            if not out_path.exists():
                msg = f"{self.config.package} produced no output file"
                raise FileNotFoundError(msg)
            obfuscated = out_path.read_text(encoding="utf-8")

        logger.debug(
            "[OBF] %d chars in, %d chars out", len(payload), len(obfuscated)
        )
        return obfuscated
