"""
Normalisation of source image references.
Callers pass media paths, JSON file descriptors or absolute URLs to this
server; all of them resolve to an absolute path under SOURCE_ROOT.
"""

import json
import re
from pathlib import Path
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


class SourceResolver:
    """Resolve image references to absolute paths below a root directory."""

    def __init__(self, root: str, server_name: Optional[str] = None):
        self.root = Path(root).resolve()
        self.server_name = server_name
        self._url_pattern = (
            re.compile(r"^(?:https?://)?" + re.escape(server_name) + r"(?::\d+)?/(.+)$")
            if server_name else None
        )

    def resolve(self, image: Optional[str]) -> Optional[str]:
        """
        Absolute path for an image reference, or None if it cannot point at
        a file under the root.
        """
        if not image:
            return None

        # {"path": "...", ...} file descriptors
        if image.startswith('{"'):
            try:
                attempt = json.loads(image)
            except json.JSONDecodeError:
                attempt = None
            if isinstance(attempt, dict) and attempt.get("path"):
                image = str(attempt["path"])

        if self._url_pattern is not None:
            match = self._url_pattern.match(image)
            if match:
                # Only spaces are decoded; a full unquote would mangle '+'
                image = match.group(1).replace("%20", " ")

        path = Path(image).resolve()
        if not (path.is_absolute() and self._inside_root(path)):
            path = (self.root / image.strip("/")).resolve()
        if not self._inside_root(path):
            logger.warning("source_outside_root", image=image)
            return None
        return str(path)

    def _inside_root(self, path: Path) -> bool:
        return path == self.root or self.root in path.parents
