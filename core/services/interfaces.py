"""Core service interfaces and shared data structures.

This module defines the dataclasses exchanged between the infrastructure
collaborators (ingestion, AI tagging, persistence) and the view-models,
plus the repository interface the view-models are written against.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from core.models import Photograph, Tag


@dataclass
class IngestResult:
    """Outcome of ingesting one image file.

    Attributes:
        photo: The new photograph record.
        new_tags: Tag definitions created while ingesting (not yet persisted).
    """

    photo: Photograph
    new_tags: list[Tag] = field(default_factory=list)


@dataclass
class AITagResult:
    """AI tags produced for one photograph.

    Attributes:
        photo_id: Photograph the tags belong to.
        tags: Tag definitions (all AI-generated) returned by the model.
        tag_ids: Ids in model order; may be empty when the call failed.
    """

    photo_id: str
    tags: list[Tag] = field(default_factory=list)
    tag_ids: list[str] = field(default_factory=list)


class ITagRepository:
    """Interface for tag definition and per-file tag assignment storage."""

    def get_tag_definitions(self) -> list[Tag]:
        """Return every known tag definition."""
        raise NotImplementedError

    def add_tag_definitions(self, tags: list[Tag]) -> list[Tag]:
        """Append definitions with unseen ids; return the ones added."""
        raise NotImplementedError

    def get_saved_tags_for_file(self, file_name: str) -> list[str]:
        """Return user tag ids saved for `file_name`."""
        raise NotImplementedError

    def save_tags_for_file(self, file_name: str, tag_ids: list[str]) -> None:
        """Replace user tag ids for `file_name`."""
        raise NotImplementedError

    def get_ai_tags_for_file(self, file_name: str) -> tuple[list[str], int | None]:
        """Return (AI tag ids, harmonization version) saved for `file_name`."""
        raise NotImplementedError

    def save_ai_tags_for_file(
        self, file_name: str, tag_ids: list[str], harmonization_version: int | None = None
    ) -> None:
        """Replace AI tag ids for `file_name`."""
        raise NotImplementedError

    def clear(self) -> None:
        """Drop every stored mapping and definition."""
        raise NotImplementedError
