"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

DEFAULTS: dict[str, Any] = {
    "library": {"root": "~/SomaticStudio"},
    "logging": {"dir": "~/.somatic_studio/logs", "level": "INFO"},
    "experience": {
        "frame_interval_ms": 16,
        "sensitive_tag_id": "nsfw",
        "headless_frames": 180,
        "viewport": {"width": 1280, "height": 800},
    },
    "ai": {
        "model": "gemini-2.5-flash",
        "batch_size": 3,
        "harmonize_batch_size": 5,
        "batch_delay_seconds": 0.2,
    },
    "sorting": {"defaults": [{"field": "capture_timestamp", "asc": True}]},
}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class JsonSettings:
    """JSON settings reader with dotted-key access layered over `DEFAULTS`."""

    def __init__(self, settings_path: str | Path | None = None) -> None:
        self._path = Path(settings_path) if settings_path is not None else None
        data: dict[str, Any] = {}
        if self._path is not None:
            if not self._path.exists():
                raise FileNotFoundError(f"settings.json not found: {self._path}")
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        self._data = _merge(DEFAULTS, data)

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or `default` if not present."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(self.get(key, default))
        except (ValueError, TypeError):
            return default

    def get_float(self, key: str, default: float) -> float:
        try:
            return float(self.get(key, default))
        except (ValueError, TypeError):
            return default

    def get_path(self, key: str, default: str) -> Path:
        raw = self.get(key, default)
        return Path(str(raw if isinstance(raw, str) else default)).expanduser()
