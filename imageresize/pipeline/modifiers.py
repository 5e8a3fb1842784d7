"""
Pixel modifier dispatch table.

Each modifier maps its option name to a pydantic validator and the backend
call that applies it. The table order is the application order: modifiers
are applied in the order declared here, whatever order the caller gave them
in. A batch is validated in full before anything is applied so one bad value
reports every invalid field and nothing is written.
"""

import re
from dataclasses import dataclass
from typing import Annotated, Any, Callable, Literal

from pydantic import AfterValidator, Field, StringConstraints, TypeAdapter, ValidationError

from imageresize.backends.base import ImageBackend
from imageresize.models.enums import FitPosition, FlipDirection
from imageresize.observability.metrics import modifier_validation_failures_total


class ModifierValidationError(ValueError):
    """One or more modifier values are invalid; carries every failing field."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        lines = [f"{field}: {message}" for field, message in errors.items()]
        super().__init__("Cannot process image: " + "\n".join(lines))


@dataclass(frozen=True)
class InsertSpec:
    path: str
    position: FitPosition
    x: int
    y: int


# ─── Value parsers ────────────────────────────────────────────

_COLORIZE_PATTERN = re.compile(r"^\s*(-?\d+)\s*,\s*(-?\d+)\s*,\s*(-?\d+)\s*$")
_INSERT_PATTERN = re.compile(r"^(.+),([a-z-]+),(\d+),(\d+)$")


def _parse_colorize(value: str) -> tuple[int, int, int]:
    match = _COLORIZE_PATTERN.match(value)
    if not match:
        raise ValueError("must be three comma-separated integers")
    red, green, blue = (int(part) for part in match.groups())
    if not all(-100 <= channel <= 100 for channel in (red, green, blue)):
        raise ValueError("each channel must be between -100 and 100")
    return red, green, blue


def _parse_insert(value: str) -> InsertSpec:
    match = _INSERT_PATTERN.match(value.strip())
    if not match:
        raise ValueError("must be in the form path,position,x,y")
    path, position, x, y = match.groups()
    try:
        anchor = FitPosition(position)
    except ValueError:
        raise ValueError(f"unknown position: {position}") from None
    return InsertSpec(path=path.strip(), position=anchor, x=int(x), y=int(y))


Amount = Annotated[int, Field(ge=0, le=100)]
Level = Annotated[int, Field(ge=-100, le=100)]
HexColor = Annotated[str, StringConstraints(pattern=r"^#(?:[0-9a-fA-F]{3}){1,2}$")]
Colorize = Annotated[str, AfterValidator(_parse_colorize)]
Insert = Annotated[str, AfterValidator(_parse_insert)]


# ─── Dispatch table ───────────────────────────────────────────

@dataclass(frozen=True)
class Modifier:
    name: str
    adapter: TypeAdapter
    apply: Callable[[ImageBackend, Any, Any], Any]


def _when(flag: bool, image: Any, operation: Callable[[], Any]) -> Any:
    return operation() if flag else image


MODIFIERS: tuple[Modifier, ...] = (
    Modifier("blur", TypeAdapter(Amount), lambda b, im, v: b.blur(im, v)),
    Modifier("sharpen", TypeAdapter(Amount), lambda b, im, v: b.sharpen(im, v)),
    Modifier("brightness", TypeAdapter(Level), lambda b, im, v: b.brightness(im, v)),
    Modifier("contrast", TypeAdapter(Level), lambda b, im, v: b.contrast(im, v)),
    Modifier(
        "pixelate",
        TypeAdapter(Annotated[int, Field(ge=1, le=1000)]),
        lambda b, im, v: b.pixelate(im, v),
    ),
    Modifier("greyscale", TypeAdapter(bool), lambda b, im, v: _when(v, im, lambda: b.greyscale(im))),
    Modifier("invert", TypeAdapter(bool), lambda b, im, v: _when(v, im, lambda: b.invert(im))),
    Modifier("opacity", TypeAdapter(Amount), lambda b, im, v: b.opacity(im, v)),
    Modifier(
        "rotate",
        TypeAdapter(Annotated[int, Field(ge=0, le=360)]),
        lambda b, im, v: b.rotate(im, v),
    ),
    Modifier(
        "flip",
        TypeAdapter(Literal["v", "h"]),
        lambda b, im, v: b.flip(im, FlipDirection(v)),
    ),
    Modifier("background", TypeAdapter(HexColor), lambda b, im, v: b.fill_background(im, v)),
    Modifier("colorize", TypeAdapter(Colorize), lambda b, im, v: b.colorize(im, *v)),
    Modifier(
        "insert",
        TypeAdapter(Insert),
        lambda b, im, v: b.insert(im, v.path, v.position, v.x, v.y),
    ),
)

MODIFIER_NAMES = frozenset(modifier.name for modifier in MODIFIERS)


def validate_modifiers(options: dict[str, Any]) -> list[tuple[Modifier, Any]]:
    """
    Validate every modifier present in `options`.

    Returns (modifier, parsed value) pairs in application order. Raises
    ModifierValidationError naming all invalid fields at once.
    """
    validated: list[tuple[Modifier, Any]] = []
    errors: dict[str, str] = {}

    for modifier in MODIFIERS:
        if options.get(modifier.name) is None:
            continue
        try:
            validated.append((modifier, modifier.adapter.validate_python(options[modifier.name])))
        except ValidationError as e:
            errors[modifier.name] = "; ".join(error["msg"] for error in e.errors())

    if errors:
        modifier_validation_failures_total.inc()
        raise ModifierValidationError(errors)
    return validated


def apply_modifiers(
    backend: ImageBackend,
    image: Any,
    validated: list[tuple[Modifier, Any]],
) -> Any:
    for modifier, value in validated:
        image = modifier.apply(backend, image, value)
    return image
