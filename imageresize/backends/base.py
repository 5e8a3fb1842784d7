"""
Abstract base class for image backends.
The backend is the codec/pixel collaborator: it decodes, executes geometry
steps and modifiers, and encodes. The resizer never touches pixels directly.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from imageresize.models.enums import FitPosition, FlipDirection


class ImageBackend(ABC):
    """
    Abstract base class for all image backends.

    Every backend must:
    1. Decode files into its own in-memory image type
    2. Implement the geometry primitives and the fixed modifier set
    3. Encode to every output format
    4. Raise BackendError on failure (never return partial data)
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Value of the `driver` option selecting this backend."""
        ...

    @property
    @abstractmethod
    def backend_version(self) -> str:
        ...

    # ── Codec ────────────────────────────────────────────────

    @abstractmethod
    def open(self, path: str) -> Any:
        """Decode an image file. Raises BackendError if it cannot."""
        ...

    @abstractmethod
    def sniff_format(self, path: str) -> Optional[str]:
        """Output format name matching the file's encoding, None if unknown."""
        ...

    @abstractmethod
    def placeholder(self) -> Any:
        """Generated "image not found" image."""
        ...

    @abstractmethod
    def size(self, image: Any) -> tuple[int, int]:
        ...

    @abstractmethod
    def has_alpha(self, image: Any) -> bool:
        ...

    @abstractmethod
    def encode(self, image: Any, fmt: str, quality: Optional[int] = None) -> bytes:
        ...

    # ── Geometry ─────────────────────────────────────────────

    @abstractmethod
    def crop(self, image: Any, left: int, top: int, width: int, height: int) -> Any:
        ...

    @abstractmethod
    def scale(self, image: Any, width: int, height: int) -> Any:
        ...

    @abstractmethod
    def resize_canvas(
        self, image: Any, width: int, height: int, anchor: FitPosition = FitPosition.CENTER,
    ) -> Any:
        ...

    # ── Modifiers ────────────────────────────────────────────

    @abstractmethod
    def blur(self, image: Any, amount: int) -> Any: ...

    @abstractmethod
    def sharpen(self, image: Any, amount: int) -> Any: ...

    @abstractmethod
    def brightness(self, image: Any, level: int) -> Any: ...

    @abstractmethod
    def contrast(self, image: Any, level: int) -> Any: ...

    @abstractmethod
    def pixelate(self, image: Any, size: int) -> Any: ...

    @abstractmethod
    def greyscale(self, image: Any) -> Any: ...

    @abstractmethod
    def invert(self, image: Any) -> Any: ...

    @abstractmethod
    def opacity(self, image: Any, level: int) -> Any: ...

    @abstractmethod
    def rotate(self, image: Any, angle: int) -> Any: ...

    @abstractmethod
    def flip(self, image: Any, direction: FlipDirection) -> Any: ...

    @abstractmethod
    def fill_background(self, image: Any, color: str) -> Any: ...

    @abstractmethod
    def colorize(self, image: Any, red: int, green: int, blue: int) -> Any: ...

    @abstractmethod
    def insert(
        self, image: Any, path: str, position: FitPosition, x: int, y: int,
    ) -> Any: ...


class BackendError(Exception):
    """Raised when an image backend fails."""

    def __init__(self, backend_name: str, error_code: str, message: str):
        self.backend_name = backend_name
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{backend_name}] {error_code}: {message}")
