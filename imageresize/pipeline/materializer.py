"""
Materializer: decode -> geometry -> modifiers -> encode -> atomic write.

Produces the stored artifact for one cache key exactly once: when caching is
on and the artifact is already on disk nothing is decoded. A missing or
undecodable source is replaced by the not-found image with its own forced
mode/quality/background, after which the caller's override accumulator is
re-applied.

Runs synchronously; async callers hand it to a worker thread.
"""

import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import structlog

from imageresize.backends.base import BackendError, ImageBackend
from imageresize.config import Settings
from imageresize.observability.metrics import (
    materialization_duration_seconds,
    materializations_total,
    not_found_substitutions_total,
)
from imageresize.pipeline.formats import ALPHA_FORMATS, FormatInfo, resolve_output_format
from imageresize.pipeline.geometry import CanvasStep, CropStep, GeometryPlan, ScaleStep, plan_geometry
from imageresize.pipeline.modifiers import apply_modifiers, validate_modifiers
from imageresize.pipeline.option_resolver import OptionResolver
from imageresize.storage.artifact_store import ArtifactStore
from imageresize.storage.paths import artifact_path

logger = structlog.get_logger(__name__)


@dataclass
class MaterializeRequest:
    source: Optional[str]
    options: dict[str, Any]
    cache_key: str
    overrides: dict[str, Any] = field(default_factory=dict)
    # Output format memo; when set it is used as-is instead of re-detecting
    output: Optional[FormatInfo] = None


@dataclass
class Artifact:
    path: str
    relative_path: str
    output: FormatInfo
    materialized: bool


class Materializer:
    """Turns a resolved request into a file in the artifact store."""

    def __init__(
        self,
        settings: Settings,
        store: ArtifactStore,
        resolver: OptionResolver,
        backends: dict[str, ImageBackend],
    ):
        self.settings = settings
        self.store = store
        self.resolver = resolver
        self.backends = backends

    # ── Lookups ──────────────────────────────────────────────

    def backend_for(self, options: dict[str, Any]) -> ImageBackend:
        driver = options.get("driver") or self.settings.DRIVER
        backend = self.backends.get(driver)
        if backend is None:
            logger.warning("unknown_driver", driver=driver, fallback=self.settings.DRIVER)
            backend = self.backends[self.settings.DRIVER]
        return backend

    def not_found_path(self) -> Optional[str]:
        """Configured not-found image, if set and present on disk."""
        if not self.settings.NOT_FOUND_IMAGE:
            return None
        path = Path(self.settings.NOT_FOUND_IMAGE)
        if not path.is_absolute():
            path = Path(self.settings.SOURCE_ROOT) / self.settings.NOT_FOUND_IMAGE.lstrip("/")
        return str(path) if path.is_file() else None

    def output_format(self, source: Optional[str], options: dict[str, Any]) -> FormatInfo:
        backend = self.backend_for(options)
        sniff_path = source if source and os.path.isfile(source) else self.not_found_path()
        source_format = backend.sniff_format(sniff_path) if sniff_path else None
        return resolve_output_format(
            options.get("format"), source_format, self.settings.NOT_FOUND_FORMAT
        )

    def artifact_for(self, cache_key: str, output: FormatInfo, materialized: bool = False) -> Artifact:
        relative_path = artifact_path(cache_key, output.format)
        return Artifact(
            path=str(self.store.full_path(relative_path)),
            relative_path=relative_path,
            output=output,
            materialized=materialized,
        )

    # ── Materialization ──────────────────────────────────────

    def materialize(self, request: MaterializeRequest) -> Artifact:
        output = request.output or self.output_format(request.source, request.options)
        artifact = self.artifact_for(request.cache_key, output)

        if request.options.get("cache", True) is not False and self.store.exists(artifact.relative_path):
            return artifact

        start = time.perf_counter()
        options = dict(request.options)
        backend = self.backend_for(options)

        image = self._open_source(backend, request.source)
        if image is None:
            image, options = self._not_found(backend, options, request.overrides)

        had_alpha = backend.has_alpha(image)
        original_width, original_height = backend.size(image)
        plan = plan_geometry(
            original_width,
            original_height,
            options.get("width"),
            options.get("height"),
            options.get("min_width"),
            options.get("min_height"),
            options.get("max_width"),
            options.get("max_height"),
            mode=options.get("mode") or self.settings.DEFAULT_MODE,
            upsize=bool(options.get("upsize", False)),
            fit_position=options.get("fit_position") or "center",
        )

        # Flat formats need something behind transparent or padded pixels
        if (
            output.format not in ALPHA_FORMATS
            and not options.get("background")
            and (had_alpha or plan.fills_background)
        ):
            options["background"] = "#fff"

        validated = validate_modifiers(options)

        image = self._apply_plan(backend, image, plan)
        image = apply_modifiers(backend, image, validated)
        data = backend.encode(image, output.format, options.get("quality"))
        self.store.save_bytes(artifact.relative_path, data)

        duration = time.perf_counter() - start
        materializations_total.labels(format=output.format).inc()
        materialization_duration_seconds.observe(duration)
        logger.info(
            "artifact_materialized",
            cache_key=request.cache_key,
            format=output.format,
            strategy=plan.strategy.value,
            width=plan.width,
            height=plan.height,
            duration_ms=round(duration * 1000, 1),
        )
        artifact.materialized = True
        return artifact

    def materialize_not_found(self) -> Artifact:
        """The bare not-found image, stored under its own key."""
        resolved = self.resolver.resolve(None, options={})
        return self.materialize(
            MaterializeRequest(source=None, options=resolved.options, cache_key=resolved.cache_key)
        )

    def _open_source(self, backend: ImageBackend, source: Optional[str]) -> Optional[Any]:
        if not source or not os.path.isfile(source):
            not_found_substitutions_total.labels(reason="missing").inc()
            logger.info("source_missing", source=source)
            return None
        try:
            return backend.open(source)
        except BackendError as e:
            not_found_substitutions_total.labels(reason="decode").inc()
            logger.warning("source_decode_failed", source=source, error=e.message)
            return None

    def _not_found(
        self,
        backend: ImageBackend,
        options: dict[str, Any],
        overrides: dict[str, Any],
    ) -> tuple[Any, dict[str, Any]]:
        """Not-found image plus options with its forced values applied."""
        image = None
        path = self.not_found_path()
        if path:
            try:
                image = backend.open(path)
            except BackendError as e:
                logger.warning("not_found_image_unreadable", path=path, error=e.message)
        if image is None:
            image = backend.placeholder()

        options = dict(options)
        options["background"] = self.settings.NOT_FOUND_BACKGROUND
        if self.settings.NOT_FOUND_TRANSPARENT:
            options.pop("background")
        options["mode"] = self.settings.NOT_FOUND_MODE
        options["quality"] = self.settings.NOT_FOUND_QUALITY
        options.update(overrides)
        return image, self.resolver.canonicalize(options)

    @staticmethod
    def _apply_plan(backend: ImageBackend, image: Any, plan: GeometryPlan) -> Any:
        for step in plan.steps:
            if isinstance(step, CropStep):
                image = backend.crop(image, step.left, step.top, step.width, step.height)
            elif isinstance(step, ScaleStep):
                image = backend.scale(image, step.width, step.height)
            elif isinstance(step, CanvasStep):
                image = backend.resize_canvas(image, step.width, step.height, step.anchor)
        return image
