import asyncio
import contextlib
import logging
from dataclasses import dataclass

log = logging.getLogger("media.process")

@dataclass
class ToolResult:
    returncode: int
    stdout: bytes
    stderr: bytes

    def stderr_tail(self, limit: int = 500) -> str:
        return self.stderr.decode("utf-8", errors="replace").strip()[-limit:]

async def run_tool(*argv: str, timeout: float) -> ToolResult:
    """Run an external tool to completion, killing it if it outlives ``timeout``.

    Raises ``OSError`` when the binary cannot be started and
    ``asyncio.TimeoutError`` once the child has been killed and reaped.
    """
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except (asyncio.TimeoutError, asyncio.CancelledError):
        log.warning(f"Killing {argv[0]} (pid={proc.pid}) after timeout/cancellation")
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        raise
    return ToolResult(proc.returncode, stdout, stderr)
