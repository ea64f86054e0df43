"""Lightweight view model wrapper around `Photograph`."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from core.models import UNKNOWN_EXPOSURE, Photograph, Tag, TagType


@dataclass
class PhotoVM:
    """Expose convenient properties for bindings/templates."""

    record: Photograph
    tags_by_id: dict[str, Tag] = field(default_factory=dict)

    @property
    def file_name(self) -> str:
        return self.record.file_name

    @property
    def captured_at(self) -> str:
        """Capture time as `YYYY-MM-DD HH:MM` (UTC)."""
        dt = datetime.fromtimestamp(self.record.capture_timestamp / 1000, tz=timezone.utc)
        return dt.strftime("%Y-%m-%d %H:%M")

    @property
    def exposure(self) -> str:
        """Aperture, shutter, and ISO joined for display; unknown parts omitted."""
        parts = [self.record.aperture, self.record.shutter_speed]
        if self.record.iso != UNKNOWN_EXPOSURE:
            parts.append(f"ISO {self.record.iso}")
        return " · ".join(p for p in parts if p and p != UNKNOWN_EXPOSURE)

    @property
    def user_tags(self) -> list[Tag]:
        return [self.tags_by_id[t] for t in self.record.tag_ids if t in self.tags_by_id]

    @property
    def ai_tags(self) -> list[Tag]:
        return [self.tags_by_id[t] for t in self.record.ai_tag_ids or [] if t in self.tags_by_id]

    @property
    def is_ai_tagged(self) -> bool:
        return bool(self.record.ai_tag_ids)

    @property
    def thematic_tag_labels(self) -> list[str]:
        """Labels of the non-technical, non-seasonal tags."""
        skip = {TagType.TECHNICAL, TagType.SEASONAL}
        return [t.label for t in self.user_tags + self.ai_tags if t.type not in skip]
