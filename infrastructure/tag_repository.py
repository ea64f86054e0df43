"""JSON persistence for tag definitions and per-file tag assignments.

Layout under `<root>/resources/`:
    definitions.json  list of {"id", "label", "type"}
    tags.json         {"<file name>": ["tag-id", ...]}        (user tags)
    ai_tags.json      {"<file name>": {"tag_ids": [...], "harmonization_version": n}}

Everything is loaded once on construction and written through on every
mutation. Unreadable or malformed files load as empty and are rewritten on
the next save.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger

from core.models import Tag, TagType
from core.services.interfaces import ITagRepository

RESOURCES_DIR = "resources"
DEFINITIONS_FILE = "definitions.json"
TAGS_FILE = "tags.json"
AI_TAGS_FILE = "ai_tags.json"


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        text = path.read_text(encoding="utf-8")
        return json.loads(text) if text.strip() else default
    except (OSError, ValueError) as ex:
        logger.warning("Failed to read {} ({}); starting empty", path, ex)
        return default


def _parse_tag(raw: Any) -> Tag | None:
    if not isinstance(raw, dict):
        return None
    try:
        return Tag(id=str(raw["id"]), label=str(raw["label"]), type=TagType(raw["type"]))
    except (KeyError, ValueError) as ex:
        logger.warning("Skipping malformed tag definition {}: {}", raw, ex)
        return None


class JsonTagRepository(ITagRepository):
    """Write-through JSON store for tags, injected into the view-models."""

    def __init__(self, root_dir: str | Path) -> None:
        self._dir = Path(root_dir).expanduser() / RESOURCES_DIR
        self._definitions: list[Tag] = []
        self._user_tags: dict[str, list[str]] = {}
        self._ai_tags: dict[str, dict[str, Any]] = {}
        self.load()

    @property
    def directory(self) -> Path:
        return self._dir

    def load(self) -> None:
        """(Re)load every file from disk."""
        raw_defs = _read_json(self._dir / DEFINITIONS_FILE, [])
        self._definitions = []
        seen: set[str] = set()
        for raw in raw_defs if isinstance(raw_defs, list) else []:
            tag = _parse_tag(raw)
            if tag is not None and tag.id not in seen:
                seen.add(tag.id)
                self._definitions.append(tag)

        raw_tags = _read_json(self._dir / TAGS_FILE, {})
        self._user_tags = {
            str(k): [str(t) for t in v]
            for k, v in (raw_tags.items() if isinstance(raw_tags, dict) else [])
            if isinstance(v, list)
        }

        raw_ai = _read_json(self._dir / AI_TAGS_FILE, {})
        self._ai_tags = {
            str(k): v
            for k, v in (raw_ai.items() if isinstance(raw_ai, dict) else [])
            if isinstance(v, dict)
        }
        logger.info(
            "Loaded tag library from {}: {} definitions, {} tagged files",
            self._dir,
            len(self._definitions),
            len(self._user_tags),
        )

    # Definitions
    def get_tag_definitions(self) -> list[Tag]:
        return list(self._definitions)

    def add_tag_definitions(self, tags: list[Tag]) -> list[Tag]:
        known = {t.id for t in self._definitions}
        added: list[Tag] = []
        for tag in tags:
            if tag.id in known:
                continue
            known.add(tag.id)
            added.append(tag)
        if added:
            self._definitions.extend(added)
            self._write(
                DEFINITIONS_FILE,
                [{"id": t.id, "label": t.label, "type": t.type.value} for t in self._definitions],
            )
        return added

    # User tags
    def get_saved_tags_for_file(self, file_name: str) -> list[str]:
        return list(self._user_tags.get(file_name, []))

    def save_tags_for_file(self, file_name: str, tag_ids: list[str]) -> None:
        self._user_tags[file_name] = list(dict.fromkeys(tag_ids))
        self._write(TAGS_FILE, self._user_tags)

    # AI tags
    def get_ai_tags_for_file(self, file_name: str) -> tuple[list[str], int | None]:
        entry = self._ai_tags.get(file_name)
        if not entry:
            return [], None
        ids = [str(t) for t in entry.get("tag_ids", []) or []]
        version = entry.get("harmonization_version")
        return ids, int(version) if isinstance(version, int) else None

    def save_ai_tags_for_file(
        self, file_name: str, tag_ids: list[str], harmonization_version: int | None = None
    ) -> None:
        self._ai_tags[file_name] = {
            "tag_ids": list(dict.fromkeys(tag_ids)),
            "harmonization_version": harmonization_version,
        }
        self._write(AI_TAGS_FILE, self._ai_tags)

    def clear(self) -> None:
        self._definitions = []
        self._user_tags = {}
        self._ai_tags = {}
        self._write(DEFINITIONS_FILE, [])
        self._write(TAGS_FILE, {})
        self._write(AI_TAGS_FILE, {})
        logger.info("Cleared tag library at {}", self._dir)

    def _write(self, name: str, payload: Any) -> None:
        path = self._dir / name
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as ex:
            logger.error("Disk write failed for {}: {}", path, ex)
