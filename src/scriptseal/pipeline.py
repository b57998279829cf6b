"""Build orchestration: locate -> encode -> transform -> decode -> finish.

Each run gets a BuildContext holding its nonce and the results map, so
concurrent or repeated builds in one process never share state. Every
stage failure raises a BuildError subclass and nothing is written.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from scriptseal.errors import (
    AdapterFailureError,
    FinisherFailureError,
    InputNotFoundError,
    InputReadError,
    OutputWriteError,
)
from scriptseal.extraction.locator import LocatedScripts, Region, locate_scripts
from scriptseal.extraction.placeholders import PlaceholderCodec, new_nonce
from scriptseal.extraction.safety import escape_closing_tags
from scriptseal.tools.minifier import HtmlMinifierTerser
from scriptseal.tools.obfuscator import JavaScriptObfuscator

if TYPE_CHECKING:
    from scriptseal.config import Settings
    from scriptseal.tools.minifier import DocumentFinisher
    from scriptseal.tools.obfuscator import ScriptTransformer

logger = logging.getLogger(__name__)


@dataclass
class BuildContext:
    """Per-run state passed explicitly through every stage."""

    nonce: str
    results: dict[int, str] = field(default_factory=dict)
    located: LocatedScripts | None = None

    @classmethod
    def for_document(cls, document: str) -> BuildContext:
        """New context whose nonce cannot collide with *document*."""
        return cls(nonce=new_nonce(document))

    @property
    def scratch_prefix(self) -> str:
        return f"scriptseal_{self.nonce}_"


@dataclass(frozen=True)
class BuildReport:
    """Summary of a successful file build."""

    input_path: Path
    output_path: Path
    transformed: int
    passed_through: int
    input_chars: int
    output_chars: int
    elapsed_seconds: float


async def _transform_one(
    ctx: BuildContext,
    region: Region,
    transform: ScriptTransformer,
    semaphore: asyncio.Semaphore,
) -> None:
    if region.index is None:
        msg = f"Script at position {region.position} is not transformable"
        raise ValueError(msg)
    async with semaphore:
        logger.info(
            "Obfuscating script #%d (%d chars)", region.index, len(region.code)
        )
        try:
            output = await transform(region.code)
        except Exception as exc:
            raise AdapterFailureError(
                region.index, str(exc) or type(exc).__name__
            ) from exc

    if not isinstance(output, str) or not output.strip():
        raise AdapterFailureError(region.index, "transformer returned no output")

    ctx.results[region.index] = escape_closing_tags(output)


async def transform_regions(
    ctx: BuildContext,
    regions: tuple[Region, ...],
    transform: ScriptTransformer,
    concurrency: int = 1,
) -> dict[int, str]:
    """Run *transform* over every region, at most *concurrency* at a time.

    Results are stored guarded (closing tags escaped) in ``ctx.results``.
    On the first failure all outstanding calls are cancelled and awaited,
    so their scratch files are gone before the error propagates.

    Raises:
        AdapterFailureError: Naming the first region whose call failed.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))
    tasks = [
        asyncio.create_task(
            _transform_one(ctx, region, transform, semaphore),
            name=f"obfuscate-script-{region.index}",
        )
        for region in regions
    ]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return ctx.results


def _check_scripts_survived(document: str, results: dict[int, str]) -> None:
    """Fail if the finisher rewrote any transformed script."""
    for index in sorted(results):
        if results[index].strip() not in document:
            msg = f"Minifier altered obfuscated script #{index}"
            raise FinisherFailureError(msg)


async def obfuscate_document(
    document: str,
    transform: ScriptTransformer,
    finish: DocumentFinisher,
    *,
    concurrency: int = 1,
    verify_finished: bool = True,
    context: BuildContext | None = None,
) -> str:
    """Obfuscate every inline script in *document* and minify the rest.

    Args:
        document: Source HTML.
        transform: Maps one script payload to its obfuscated form.
        finish: Minifies the reassembled document without touching scripts.
        concurrency: Maximum simultaneous transform calls.
        verify_finished: Check each obfuscated script survives the finisher.
        context: Run context; a fresh one is created if omitted.

    Returns:
        The finished document.

    Raises:
        NoTransformableContentError: No inline script qualifies.
        PlaceholderIntegrityError: Markers did not parse as script text.
        AdapterFailureError: A transform call failed.
        MissingResolvedResultError: A marker had no transformed payload.
        FinisherFailureError: Minification failed or altered a script.
    """
    ctx = context if context is not None else BuildContext.for_document(document)

    located = locate_scripts(document)
    ctx.located = located
    regions = located.transformable

    codec = PlaceholderCodec(ctx.nonce)
    encoded = codec.encode(located)
    codec.verify_encoded(encoded, len(regions), unterminated=located.unterminated)

    await transform_regions(ctx, regions, transform, concurrency=concurrency)

    assembled = codec.decode(encoded, ctx.results)

    try:
        finished = await finish(assembled)
    except Exception as exc:
        msg = f"Minification failed: {exc}"
        raise FinisherFailureError(msg) from exc

    if verify_finished:
        _check_scripts_survived(finished, ctx.results)

    return finished


def _write_atomic(path: Path, content: str) -> None:
    """Write *content* to *path* via a sibling temp file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
            tmp_file.write(content)
        os.replace(tmp_path, path)
    finally:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)


async def build_file(
    input_path: Path,
    output_path: Path,
    settings: Settings,
    *,
    transform: ScriptTransformer | None = None,
    finish: DocumentFinisher | None = None,
) -> BuildReport:
    """Read *input_path*, obfuscate and minify it, write *output_path*.

    The output file is only written once every stage has succeeded.

    Raises:
        InputNotFoundError: *input_path* does not exist.
        InputReadError: *input_path* is unreadable or not valid UTF-8.
        OutputWriteError: *output_path* could not be written.
        BuildError: Any pipeline stage failed (see obfuscate_document).
    """
    started = time.perf_counter()
    input_path = Path(input_path)
    output_path = Path(output_path)

    if not input_path.is_file():
        raise InputNotFoundError(input_path)
    try:
        document = input_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InputReadError(input_path, str(exc)) from exc

    ctx = BuildContext.for_document(document)
    if transform is None:
        transform = JavaScriptObfuscator(
            settings.obfuscator, scratch_prefix=ctx.scratch_prefix
        )
    if finish is None:
        finish = HtmlMinifierTerser(
            settings.minifier, scratch_prefix=ctx.scratch_prefix
        )

    output = await obfuscate_document(
        document,
        transform,
        finish,
        concurrency=settings.build.concurrency,
        verify_finished=settings.build.verify_finished_scripts,
        context=ctx,
    )
    try:
        _write_atomic(output_path, output)
    except OSError as exc:
        raise OutputWriteError(output_path, str(exc)) from exc

    located = ctx.located
    if located is None:
        msg = "Build finished without recording located scripts"
        raise RuntimeError(msg)
    report = BuildReport(
        input_path=input_path,
        output_path=output_path,
        transformed=len(located.transformable),
        passed_through=len(located.skipped),
        input_chars=len(document),
        output_chars=len(output),
        elapsed_seconds=time.perf_counter() - started,
    )
    logger.info(
        "Wrote %s (%d scripts obfuscated, %d passed through) in %.2fs",
        output_path,
        report.transformed,
        report.passed_through,
        report.elapsed_seconds,
    )
    return report
