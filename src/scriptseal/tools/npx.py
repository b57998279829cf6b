"""Run Node CLI tools through npx.

Neither tool is a Python dependency: ``npx --yes`` fetches them on first
use, so the build needs only Node on PATH.
"""

from __future__ import annotations

import asyncio
import logging

from scriptseal.errors import ToolInvocationError

logger = logging.getLogger(__name__)


def npx_command(npx: str, package: str, args: list[str]) -> list[str]:
    """Build the argv for ``npx --yes <package> <args...>``."""
    return [npx, "--yes", package, *args]


async def run_tool(cmd: list[str], timeout: float | None = None) -> str:
    """Run *cmd* to completion and return its stdout.

    Args:
        cmd: Full argv, executable first.
        timeout: Seconds before the process is killed. None waits forever.

    Returns:
        Decoded stdout.

    Raises:
        ToolInvocationError: If the executable is missing, the process
            times out, or it exits non-zero.
    """
    logger.debug("[TOOL] %s", " ".join(cmd))
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        msg = f"Executable not found: {cmd[0]}"
        raise ToolInvocationError(msg, cmd) from exc

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            proc.communicate(), timeout=timeout
        )
    except TimeoutError as exc:
        proc.kill()
        await proc.wait()
        msg = f"{cmd[0]} timed out after {timeout}s"
        raise ToolInvocationError(msg, cmd) from exc
    except asyncio.CancelledError:
        # Sibling task failed: don't leave the child running
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise

    # returncode is guaranteed to be set after communicate() returns
    assert proc.returncode is not None
    if proc.returncode != 0:
        raise ToolInvocationError(
            f"{cmd[0]} exited with status {proc.returncode}",
            cmd,
            returncode=proc.returncode,
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
        )
    return stdout_bytes.decode("utf-8", errors="replace")
