import asyncio
import json
import logging
from tubely.core.errors import ProbeFailure
from tubely.modules.media.orientation import Orientation, classify
from tubely.modules.media.process import run_tool

log = logging.getLogger("media.prober")

def _first_video_stream(streams: list) -> dict | None:
    for stream in streams:
        if not isinstance(stream, dict):
            continue
        if stream.get("codec_type") == "video":
            return stream
        if "codec_type" not in stream and "width" in stream and "height" in stream:
            return stream
    return None

class MediaProber:
    """Derives a video's orientation with ``ffprobe``."""

    def __init__(self, ffprobe_path: str = "ffprobe", timeout: float = 30.0):
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    async def dimensions(self, path: str) -> tuple[int, int]:
        try:
            result = await run_tool(
                self.ffprobe_path, "-v", "error", "-print_format", "json", "-show_streams", path,
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProbeFailure(f"ffprobe timed out after {self.timeout}s") from e
        except OSError as e:
            raise ProbeFailure(f"Couldn't run ffprobe: {e}") from e

        if result.returncode != 0:
            raise ProbeFailure(f"ffprobe exited with {result.returncode}: {result.stderr_tail()}")

        try:
            output = json.loads(result.stdout)
        except ValueError as e:
            raise ProbeFailure(f"Couldn't parse ffprobe output: {e}") from e

        streams = output.get("streams") if isinstance(output, dict) else None
        stream = _first_video_stream(streams or [])
        if stream is None:
            raise ProbeFailure("No video stream found")

        try:
            width, height = int(stream["width"]), int(stream["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise ProbeFailure(f"Video stream has no usable geometry: {e}") from e
        if width <= 0 or height <= 0:
            raise ProbeFailure(f"Video stream has invalid geometry {width}x{height}")
        return width, height

    async def probe(self, path: str) -> Orientation:
        width, height = await self.dimensions(path)
        orientation = classify(width, height)
        log.debug(f"Probed {path}: {width}x{height} -> {orientation.value}")
        return orientation
