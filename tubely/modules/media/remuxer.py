import asyncio
import logging
import os
from tubely.core.errors import RemuxFailure
from tubely.modules.media.process import run_tool

log = logging.getLogger("media.remuxer")

PROCESSED_SUFFIX = ".processing"

def _discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass

class FastStartRemuxer:
    """Moves the MP4 ``moov`` atom ahead of the media data without re-encoding."""

    def __init__(self, ffmpeg_path: str = "ffmpeg", timeout: float = 300.0):
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    async def remux(self, path: str) -> str:
        output_path = f"{path}{PROCESSED_SUFFIX}"
        try:
            return await self._remux(path, output_path)
        except BaseException:
            # a failed remux never leaves a usable-looking output behind
            _discard(output_path)
            raise

    async def _remux(self, path: str, output_path: str) -> str:
        try:
            result = await run_tool(
                self.ffmpeg_path, "-y", "-i", path,
                "-movflags", "faststart", "-codec", "copy", "-f", "mp4",
                output_path,
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise RemuxFailure(f"ffmpeg timed out after {self.timeout}s") from e
        except OSError as e:
            raise RemuxFailure(f"Couldn't run ffmpeg: {e}") from e

        if result.returncode != 0:
            raise RemuxFailure(f"Error processing video (exit {result.returncode}): {result.stderr_tail()}")

        try:
            size = os.stat(output_path).st_size
        except OSError as e:
            raise RemuxFailure(f"Could not stat processed file: {e}") from e
        if size == 0:
            raise RemuxFailure("Processed file is empty")

        log.debug(f"Remuxed {path} -> {output_path} ({size:,} bytes)")
        return output_path
