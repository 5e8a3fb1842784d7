"""
Output format and mime resolution.

Precedence: explicit `format` option, else the source's own format, else the
configured not-found format, else jpg.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from imageresize.models.enums import OutputFormat

# format -> mime subtype (Content-Type: image/{mime})
FORMAT_MIME: dict[str, str] = {
    "jpg": "jpeg",
    "png": "png",
    "webp": "webp",
    "bmp": "bmp",
    "gif": "gif",
    "ico": "x-icon",
}

# Formats that keep an alpha channel through encoding
ALPHA_FORMATS = frozenset({"png", "webp"})


@dataclass(frozen=True)
class FormatInfo:
    mime: str
    format: str

    @property
    def content_type(self) -> str:
        return f"image/{self.mime}"

    def as_list(self) -> list[str]:
        return [self.mime, self.format]

    @classmethod
    def for_format(cls, fmt: str) -> "FormatInfo":
        fmt = normalize_format(fmt) or OutputFormat.JPG.value
        return cls(mime=FORMAT_MIME[fmt], format=fmt)

    @classmethod
    def from_list(cls, value: Optional[Sequence[str]]) -> Optional["FormatInfo"]:
        """Rebuild from a stored [mime, format] memo; None if unusable."""
        if not value or len(value) != 2:
            return None
        fmt = normalize_format(value[1])
        if fmt is None:
            return None
        return cls(mime=FORMAT_MIME[fmt], format=fmt)


def normalize_format(value: Optional[str]) -> Optional[str]:
    """Concrete output format for a user/extension value; None for auto/unknown."""
    if not value:
        return None
    value = str(value).lower().lstrip(".")
    if value == "jpeg":
        value = "jpg"
    return value if value in FORMAT_MIME else None


def resolve_output_format(
    requested: Optional[str],
    source_format: Optional[str],
    not_found_format: Optional[str] = None,
) -> FormatInfo:
    """Pick the output format following the precedence above."""
    for candidate in (requested, source_format, not_found_format):
        fmt = normalize_format(candidate)
        if fmt is not None:
            return FormatInfo.for_format(fmt)
    return FormatInfo.for_format(OutputFormat.JPG.value)
