import re
import secrets
from tubely.core.errors import UnsupportedMediaType
from tubely.modules.media.orientation import Orientation

_SUBTYPE_RE = re.compile(r"^[a-z0-9][a-z0-9.\-]*$")

# subtypes whose conventional file extension differs from the subtype itself
_EXTENSION_OVERRIDES = {
    "quicktime": "mov",
    "jpeg": "jpg",
    "x-matroska": "mkv",
}

def media_type(content_type: str | None) -> str:
    """``"video/MP4; codecs=avc1"`` -> ``"video/mp4"``."""
    return (content_type or "").split(";", 1)[0].strip().lower()

def extension_for(content_type: str) -> str:
    mtype = media_type(content_type)
    major, sep, subtype = mtype.partition("/")
    subtype = subtype.split("+", 1)[0]
    if not major or not sep or not _SUBTYPE_RE.match(subtype):
        raise UnsupportedMediaType(f"Unsupported media type: {content_type!r}")
    return _EXTENSION_OVERRIDES.get(subtype, subtype)

def build_key(content_type: str, orientation: Orientation | str) -> str:
    """Storage key ``{directory}/{random asset name}.{ext}``.

    The asset name is 32 random bytes (URL-safe base64), so concurrent uploads
    never collide on a key.
    """
    ext = extension_for(content_type)
    directory = orientation.value if isinstance(orientation, Orientation) else orientation
    return f"{directory}/{secrets.token_urlsafe(32)}.{ext}"
