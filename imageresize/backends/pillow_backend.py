"""
Pillow image backend.

Images are kept in RGB, or RGBA when the source carries alpha (or an
operation introduces transparency). Colour maths that Pillow has no direct
operation for (colorize, opacity) is done on numpy arrays.
"""

from io import BytesIO
from typing import Callable, Optional

import numpy as np
import PIL
from PIL import Image, ImageColor, ImageDraw, ImageEnhance, ImageFilter, ImageOps

from imageresize.backends.base import BackendError, ImageBackend
from imageresize.models.enums import FitPosition, FlipDirection
from imageresize.pipeline.geometry import anchor_offset
from imageresize.storage.sources import SourceResolver

# Pillow's format names -> output format names
PIL_FORMATS: dict[str, str] = {
    "JPEG": "jpg",
    "MPO": "jpg",
    "PNG": "png",
    "WEBP": "webp",
    "BMP": "bmp",
    "DIB": "bmp",
    "GIF": "gif",
    "ICO": "ico",
}

# Output format names -> Pillow save format
SAVE_FORMATS: dict[str, str] = {
    "jpg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "bmp": "BMP",
    "gif": "GIF",
    "ico": "ICO",
}

PLACEHOLDER_SIZE = (400, 300)


def _on_rgb(image: Image.Image, operation: Callable[[Image.Image], Image.Image]) -> Image.Image:
    """Run an RGB-only operation, keeping any alpha channel untouched."""
    if image.mode == "RGBA":
        alpha = image.getchannel("A")
        result = operation(image.convert("RGB")).convert("RGBA")
        result.putalpha(alpha)
        return result
    return operation(image.convert("RGB"))


class PillowBackend(ImageBackend):
    """Decode/transform/encode with Pillow."""

    def __init__(self, sources: Optional[SourceResolver] = None):
        self.sources = sources

    @property
    def backend_name(self) -> str:
        return "pillow"

    @property
    def backend_version(self) -> str:
        return PIL.__version__

    # ── Codec ────────────────────────────────────────────────

    def open(self, path: str) -> Image.Image:
        try:
            with Image.open(path) as im:
                im.load()
                has_alpha = im.mode in ("RGBA", "LA", "PA") or "transparency" in im.info
                return im.convert("RGBA" if has_alpha else "RGB")
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise BackendError(self.backend_name, "ERR_DECODE", f"{path}: {e}") from e

    def sniff_format(self, path: str) -> Optional[str]:
        try:
            with Image.open(path) as im:
                return PIL_FORMATS.get(im.format or "")
        except (OSError, ValueError):
            return None

    def placeholder(self) -> Image.Image:
        image = Image.new("RGB", PLACEHOLDER_SIZE, "#e5e5e5")
        draw = ImageDraw.Draw(image)
        width, height = PLACEHOLDER_SIZE
        draw.rectangle((0, 0, width - 1, height - 1), outline="#bdbdbd", width=4)
        draw.line((0, 0, width, height), fill="#bdbdbd", width=2)
        draw.line((0, height, width, 0), fill="#bdbdbd", width=2)
        label = "Image not found"
        left, top, right, bottom = draw.textbbox((0, 0), label)
        draw.text(
            ((width - (right - left)) // 2, (height - (bottom - top)) // 2),
            label,
            fill="#616161",
        )
        return image

    def size(self, image: Image.Image) -> tuple[int, int]:
        return image.size

    def has_alpha(self, image: Image.Image) -> bool:
        return image.mode == "RGBA"

    def encode(self, image: Image.Image, fmt: str, quality: Optional[int] = None) -> bytes:
        save_format = SAVE_FORMATS.get(fmt)
        if save_format is None:
            raise BackendError(self.backend_name, "ERR_FORMAT", f"Unsupported output format: {fmt}")

        if fmt not in ("png", "webp", "gif", "ico") and image.mode == "RGBA":
            image = self.fill_background(image, "#fff")

        params = {}
        if fmt in ("jpg", "webp") and quality is not None:
            params["quality"] = int(quality)

        buffer = BytesIO()
        try:
            image.save(buffer, save_format, **params)
        except (OSError, ValueError) as e:
            raise BackendError(self.backend_name, "ERR_ENCODE", str(e)) from e
        return buffer.getvalue()

    # ── Geometry ─────────────────────────────────────────────

    def crop(self, image: Image.Image, left: int, top: int, width: int, height: int) -> Image.Image:
        return image.crop((left, top, left + width, top + height))

    def scale(self, image: Image.Image, width: int, height: int) -> Image.Image:
        if image.size == (width, height):
            return image
        return image.resize((width, height), Image.Resampling.LANCZOS)

    def resize_canvas(
        self,
        image: Image.Image,
        width: int,
        height: int,
        anchor: FitPosition = FitPosition.CENTER,
    ) -> Image.Image:
        if image.size == (width, height):
            return image
        canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        offset = anchor_offset(width, height, image.width, image.height, anchor)
        canvas.paste(image.convert("RGBA"), offset)
        return canvas

    # ── Modifiers ────────────────────────────────────────────

    def blur(self, image: Image.Image, amount: int) -> Image.Image:
        if amount <= 0:
            return image
        return image.filter(ImageFilter.GaussianBlur(radius=amount / 2))

    def sharpen(self, image: Image.Image, amount: int) -> Image.Image:
        if amount <= 0:
            return image
        return _on_rgb(
            image, lambda rgb: rgb.filter(ImageFilter.UnsharpMask(radius=1, percent=amount * 16, threshold=0))
        )

    def brightness(self, image: Image.Image, level: int) -> Image.Image:
        return _on_rgb(image, lambda rgb: ImageEnhance.Brightness(rgb).enhance(1 + level / 100))

    def contrast(self, image: Image.Image, level: int) -> Image.Image:
        return _on_rgb(image, lambda rgb: ImageEnhance.Contrast(rgb).enhance(1 + level / 100))

    def pixelate(self, image: Image.Image, size: int) -> Image.Image:
        if size <= 1:
            return image
        small = image.resize(
            (max(1, image.width // size), max(1, image.height // size)),
            Image.Resampling.NEAREST,
        )
        return small.resize(image.size, Image.Resampling.NEAREST)

    def greyscale(self, image: Image.Image) -> Image.Image:
        return _on_rgb(image, lambda rgb: ImageOps.grayscale(rgb).convert("RGB"))

    def invert(self, image: Image.Image) -> Image.Image:
        return _on_rgb(image, ImageOps.invert)

    def opacity(self, image: Image.Image, level: int) -> Image.Image:
        pixels = np.array(image.convert("RGBA"), dtype=np.float32)
        pixels[..., 3] *= level / 100
        return Image.fromarray(pixels.round().astype(np.uint8))

    def rotate(self, image: Image.Image, angle: int) -> Image.Image:
        if angle % 360 == 0:
            return image
        # Counter-clockwise, canvas grown to fit; corners become transparent
        return image.convert("RGBA").rotate(angle, resample=Image.Resampling.BICUBIC, expand=True)

    def flip(self, image: Image.Image, direction: FlipDirection) -> Image.Image:
        if FlipDirection(direction) == FlipDirection.VERTICAL:
            return ImageOps.flip(image)
        return ImageOps.mirror(image)

    def fill_background(self, image: Image.Image, color: str) -> Image.Image:
        canvas = Image.new("RGBA", image.size, ImageColor.getrgb(color))
        canvas.alpha_composite(image.convert("RGBA"))
        return canvas.convert("RGB")

    def colorize(self, image: Image.Image, red: int, green: int, blue: int) -> Image.Image:
        pixels = np.array(image, dtype=np.int16)
        shift = np.array([red, green, blue], dtype=np.int16) * 255 // 100
        pixels[..., :3] = np.clip(pixels[..., :3] + shift, 0, 255)
        return Image.fromarray(pixels.astype(np.uint8))

    def insert(
        self,
        image: Image.Image,
        path: str,
        position: FitPosition,
        x: int,
        y: int,
    ) -> Image.Image:
        resolved = self.sources.resolve(path) if self.sources else path
        if resolved is None:
            raise BackendError(self.backend_name, "ERR_INSERT", f"Overlay outside source root: {path}")
        overlay = self.open(resolved).convert("RGBA")

        left, top = anchor_offset(image.width, image.height, overlay.width, overlay.height, position)
        value = FitPosition(position).value
        left += -x if "right" in value else x
        top += -y if value.startswith("bottom") else y

        result = image.convert("RGBA")
        result.paste(overlay, (left, top), overlay)
        return result if image.mode == "RGBA" else result.convert("RGB")
