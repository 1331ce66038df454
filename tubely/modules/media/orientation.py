from enum import Enum

class Orientation(str, Enum):
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"

def classify(width: int, height: int) -> Orientation:
    """Coarse 16:9 / 9:16 classification.

    Integer division is deliberate: ``1920x1080`` and ``1280x720`` are exact,
    while near-misses such as ``1366x768`` (16*768//9 == 1365) are ``other``.
    """
    if width == 16 * height // 9:
        return Orientation.LANDSCAPE
    if height == 16 * width // 9:
        return Orientation.PORTRAIT
    return Orientation.OTHER
