"""
Geometry planning: turns original size + requested size/constraints/mode into
an ordered list of crop/scale/canvas steps.

Pure functions only. The backend executes the plan; nothing here touches pixels.

Modes:
    stretch  - scale each axis to the target independently
    auto     - canvas-resize to exactly the target (centre crop/pad, no scaling)
    contain  - fit inside the target, then pad to it (no-op pad when ratios match)
    cover    - crop the largest target-ratio region at fit_position, then scale
"""

from dataclasses import dataclass
from typing import Optional, Union

from imageresize.models.enums import FitPosition, GeometryStrategy, ResizeMode


@dataclass(frozen=True)
class CropStep:
    left: int
    top: int
    width: int
    height: int


@dataclass(frozen=True)
class ScaleStep:
    width: int
    height: int


@dataclass(frozen=True)
class CanvasStep:
    """Resize the canvas without scaling; content is anchored, overflow cropped."""
    width: int
    height: int
    anchor: FitPosition = FitPosition.CENTER


GeometryStep = Union[CropStep, ScaleStep, CanvasStep]


@dataclass(frozen=True)
class GeometryPlan:
    strategy: GeometryStrategy
    width: int
    height: int
    content_width: int
    content_height: int
    steps: tuple[GeometryStep, ...] = ()
    # Padding may expose empty canvas that needs a fill when flattening
    fills_background: bool = False


# ─── Helpers ──────────────────────────────────────────────────

def _clamp(value: int, minimum: Optional[int], maximum: Optional[int]) -> int:
    if minimum:
        value = max(minimum, value)
    if maximum:
        value = min(maximum, value)
    return value


def _upsize_guard(
    width: int, height: int, limit_width: int, limit_height: int, upsize: bool,
) -> tuple[int, int]:
    """Clamp each axis to its limit unless upsizing is allowed."""
    if upsize:
        return width, height
    return min(width, limit_width), min(height, limit_height)


def _axis_offset(outer: int, inner: int, where: str) -> int:
    if where == "start":
        return 0
    if where == "end":
        return outer - inner
    return (outer - inner) // 2


def anchor_offset(
    outer_width: int,
    outer_height: int,
    inner_width: int,
    inner_height: int,
    position: FitPosition = FitPosition.CENTER,
) -> tuple[int, int]:
    """
    Top-left offset that aligns `inner` inside `outer` at `position`.
    Negative when inner is larger than outer on that axis.
    """
    value = FitPosition(position).value
    horizontal = "start" if "left" in value else "end" if "right" in value else "center"
    vertical = "start" if value.startswith("top") else "end" if value.startswith("bottom") else "center"
    return (
        _axis_offset(outer_width, inner_width, horizontal),
        _axis_offset(outer_height, inner_height, vertical),
    )


def cover_region(
    original_width: int, original_height: int, width: int, height: int,
) -> tuple[int, int]:
    """Largest region of the original with the target's aspect ratio."""
    region_height = max(1, round(original_width * height / width))
    if region_height <= original_height:
        return original_width, region_height
    region_width = max(1, round(original_height * width / height))
    return min(region_width, original_width), original_height


# ─── Planning ─────────────────────────────────────────────────

def plan_geometry(
    original_width: int,
    original_height: int,
    width: Optional[int] = None,
    height: Optional[int] = None,
    min_width: Optional[int] = None,
    min_height: Optional[int] = None,
    max_width: Optional[int] = None,
    max_height: Optional[int] = None,
    mode: ResizeMode = ResizeMode.AUTO,
    upsize: bool = False,
    fit_position: FitPosition = FitPosition.CENTER,
) -> GeometryPlan:
    """Compute the geometric transform for one image."""
    ow, oh = original_width, original_height
    has_constraint = any((min_width, min_height, max_width, max_height))

    if width is None and height is None and not has_constraint:
        return GeometryPlan(GeometryStrategy.NONE, ow, oh, ow, oh)

    if width is None and height is not None:
        height = _clamp(height, min_height, max_height)
        width = max(1, height * ow // oh)
        same_ratio = True
    elif height is None and width is not None:
        width = _clamp(width, min_width, max_width)
        height = max(1, width * oh // ow)
        same_ratio = True
    else:
        if width is None and height is None:
            width, height = ow, oh
        width = _clamp(width, min_width, max_width)
        height = _clamp(height, min_height, max_height)
        same_ratio = width * oh == height * ow

    mode = ResizeMode(mode)

    if mode in (ResizeMode.COVER, ResizeMode.CROP):
        region_width, region_height = cover_region(ow, oh, width, height)
        left, top = anchor_offset(ow, oh, region_width, region_height, fit_position)
        scale_width, scale_height = _upsize_guard(
            width, height, region_width, region_height, upsize
        )
        return GeometryPlan(
            GeometryStrategy.CROP,
            scale_width,
            scale_height,
            scale_width,
            scale_height,
            steps=(
                CropStep(left, top, region_width, region_height),
                ScaleStep(scale_width, scale_height),
            ),
        )

    if mode == ResizeMode.AUTO:
        return GeometryPlan(
            GeometryStrategy.CANVAS,
            width,
            height,
            min(ow, width),
            min(oh, height),
            steps=(CanvasStep(width, height),),
            fills_background=width > ow or height > oh,
        )

    if mode == ResizeMode.CONTAIN and not same_ratio:
        if ow * height > width * oh:
            # Source is wider than the target: full width, shorter height
            fit_width, fit_height = width, max(1, width * oh // ow)
        else:
            fit_width, fit_height = max(1, height * ow // oh), height
        scale_width, scale_height = _upsize_guard(fit_width, fit_height, ow, oh, upsize)
        return GeometryPlan(
            GeometryStrategy.PAD,
            width,
            height,
            scale_width,
            scale_height,
            steps=(ScaleStep(scale_width, scale_height), CanvasStep(width, height)),
            fills_background=True,
        )

    scale_width, scale_height = _upsize_guard(width, height, ow, oh, upsize)
    strategy = GeometryStrategy.RESIZE if mode == ResizeMode.CONTAIN else GeometryStrategy.STRETCH
    return GeometryPlan(
        strategy,
        scale_width,
        scale_height,
        scale_width,
        scale_height,
        steps=(ScaleStep(scale_width, scale_height),),
    )
