"""
Python enums for the option vocabulary.
Values are the exact strings accepted in option maps and URLs.
"""

from enum import Enum


class ResizeMode(str, Enum):
    AUTO = "auto"
    CONTAIN = "contain"
    COVER = "cover"
    CROP = "crop"
    STRETCH = "stretch"


class OutputFormat(str, Enum):
    AUTO = "auto"
    JPG = "jpg"
    PNG = "png"
    WEBP = "webp"
    BMP = "bmp"
    GIF = "gif"
    ICO = "ico"


class FitPosition(str, Enum):
    TOP_LEFT = "top-left"
    TOP = "top"
    TOP_RIGHT = "top-right"
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM = "bottom"
    BOTTOM_RIGHT = "bottom-right"


class FlipDirection(str, Enum):
    VERTICAL = "v"
    HORIZONTAL = "h"


class GeometryStrategy(str, Enum):
    """How requested dimensions are reconciled with the source."""
    NONE = "none"
    RESIZE = "resize"
    STRETCH = "stretch"
    CANVAS = "canvas"
    PAD = "pad"
    CROP = "crop"
