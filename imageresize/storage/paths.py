"""
Content-addressable key and path generation for artifact storage.
All paths are relative to CACHE_DIRECTORY.
"""

import hashlib
import json
from pathlib import Path
from typing import Any, Optional


def canonical_json(options: dict[str, Any]) -> str:
    """Stable JSON form of an option map (sorted keys, no whitespace)."""
    return json.dumps(options, sort_keys=True, separators=(",", ":"), default=str)


def cache_key(source: Optional[str], options: dict[str, Any]) -> str:
    """SHA-256 over the source path and its canonical options."""
    payload = (source or "") + canonical_json(options)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def permalink_key(identifier: str, options: dict[str, Any]) -> str:
    """Storage key for a permalink's frozen options."""
    payload = f"{identifier}:permalink:{canonical_json(options)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def artifact_path(key: str, extension: str) -> str:
    """Sharded path for a resized image: abc/def/ghi/{key}.{ext}"""
    return f"{key[0:3]}/{key[3:6]}/{key[6:9]}/{key}.{extension}"


def ensure_parent_dirs(artifact_root: str, relative_path: str) -> Path:
    """Create parent directories and return the full absolute path."""
    full_path = Path(artifact_root) / relative_path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    return full_path
