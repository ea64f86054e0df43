"""ViewModel for the flat tagging workbench.

Mediates between the ingestion/AI collaborators, the tag repository, and
the UI. Every tag mutation is written through to the repository, and
listeners (the Experience view-model) are notified with the new catalog.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

from loguru import logger

from app.viewmodels.photo_vm import PhotoVM
from core.catalog import PhotoCatalog
from core.models import Photograph, Tag, TagType
from core.services.interfaces import AITagResult, ITagRepository
from core.services.sort_service import SortService
from infrastructure.ai_service import HARMONIZATION_VERSION, GeminiTagService, ProgressCallback
from infrastructure.ingest_service import IngestService

CatalogListener = Callable[[list[Photograph], list[Tag]], None]


class WorkbenchVM:
    """Workbench view-model: ingestion, selection, bulk tagging, AI passes."""

    def __init__(
        self,
        repo: ITagRepository,
        ingest: IngestService | None = None,
        tagger: GeminiTagService | None = None,
        sorter: SortService | None = None,
        default_sort: list[tuple[str, bool]] | None = None,
    ) -> None:
        """Create a WorkbenchVM.

        Args:
            repo: Tag repository; definitions are loaded from it immediately.
            ingest: Ingestion service (defaults to `IngestService(repo)`).
            tagger: AI tagging service (defaults to a lazily-connected Gemini client).
            sorter: Sorting service (defaults to `SortService`).
            default_sort: List of (field_name, ascending) applied after every load.
        """
        self._repo = repo
        self._ingest = ingest or IngestService(repo)
        self._tagger = tagger or GeminiTagService()
        self._sorter = sorter or SortService()
        self._default_sort = default_sort or []
        self.photos: list[Photograph] = []
        self.tags: list[Tag] = repo.get_tag_definitions()
        self.selected_ids: set[str] = set()
        self._listeners: list[CatalogListener] = []

    # Observers
    def add_listener(self, listener: CatalogListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(list(self.photos), list(self.tags))

    @property
    def items(self) -> list[PhotoVM]:
        return [PhotoVM(p, self._tag_lookup()) for p in self.photos]

    @property
    def photo_count(self) -> int:
        return len(self.photos)

    def catalog(self) -> PhotoCatalog:
        return PhotoCatalog(self.photos, self.tags)

    def _tag_lookup(self) -> dict[str, Tag]:
        return {t.id: t for t in self.tags}

    # Loading
    def add_photos(self, photos: list[Photograph], new_tags: list[Tag] | None = None) -> None:
        """Merge already-built photographs (e.g. a mock catalog) into the workbench."""
        if new_tags:
            self._register_tags(new_tags)
        self.photos = self._sorter.sort(self.photos + list(photos), self._default_sort)
        self._notify()

    def load_directory(self, path: str | Path) -> int:
        """Ingest new image files from `path`. Returns the number added."""
        photos, new_tags = self._ingest.ingest_directory(path, self.photos, self.tags)
        self.add_photos(photos, new_tags)
        return len(photos)

    def remove_photos(self, photo_ids: list[str]) -> None:
        """Remove photographs from the workbench without touching files."""
        if not photo_ids:
            return
        removed = set(photo_ids)
        self.photos = [p for p in self.photos if p.id not in removed]
        self.selected_ids -= removed
        logger.info("Removed {} photographs from the workbench", len(removed))
        self._notify()

    # Selection
    def select(self, photo_id: str, additive: bool = False) -> None:
        if not additive:
            self.selected_ids = set()
        if photo_id in self.selected_ids:
            self.selected_ids.discard(photo_id)
        else:
            self.selected_ids.add(photo_id)

    def select_all(self) -> None:
        self.selected_ids = {p.id for p in self.photos}

    def clear_selection(self) -> None:
        self.selected_ids = set()

    # Tagging
    def _register_tags(self, tags: list[Tag]) -> list[Tag]:
        added = self._repo.add_tag_definitions(tags)
        if added:
            self.tags = self.tags + added
        return added

    def _replace(self, updated: dict[str, Photograph]) -> None:
        self.photos = [updated.get(p.id, p) for p in self.photos]

    def add_tag_to_selected(
        self, label: str, tag_type: TagType = TagType.CATEGORICAL
    ) -> Tag | None:
        """Create (if needed) and assign a tag to every selected photograph."""
        if not label.strip() or not self.selected_ids:
            return None
        tag = Tag.from_label(label, tag_type)
        existing = self._tag_lookup().get(tag.id)
        if existing is None:
            self._register_tags([tag])
        else:
            tag = existing

        updated: dict[str, Photograph] = {}
        for photo in self.photos:
            if photo.id not in self.selected_ids or tag.id in photo.tag_ids:
                continue
            new_photo = photo.with_tags(tag_ids=photo.tag_ids + [tag.id])
            self._repo.save_tags_for_file(photo.file_name, new_photo.tag_ids)
            updated[photo.id] = new_photo
        self._replace(updated)
        logger.info("Tagged {} photographs with {}", len(updated), tag.id)
        self._notify()
        return tag

    def remove_tag_from_selected(self, tag_id: str) -> None:
        updated: dict[str, Photograph] = {}
        for photo in self.photos:
            if photo.id not in self.selected_ids or tag_id not in photo.tag_ids:
                continue
            new_photo = photo.with_tags(tag_ids=[t for t in photo.tag_ids if t != tag_id])
            self._repo.save_tags_for_file(photo.file_name, new_photo.tag_ids)
            updated[photo.id] = new_photo
        self._replace(updated)
        self._notify()

    # AI passes
    def _apply_ai_results(
        self, results: list[AITagResult], harmonization_version: int | None = None
    ) -> int:
        new_tags = [tag for result in results for tag in result.tags]
        self._register_tags(new_tags)
        by_id = {p.id: p for p in self.photos}
        updated: dict[str, Photograph] = {}
        for result in results:
            photo = by_id.get(result.photo_id)
            if photo is None or not result.tag_ids:
                continue
            new_photo = photo.with_tags(
                ai_tag_ids=result.tag_ids, harmonization_version=harmonization_version
            )
            self._repo.save_ai_tags_for_file(
                photo.file_name, result.tag_ids, new_photo.harmonization_version
            )
            updated[photo.id] = new_photo
        self._replace(updated)
        self._notify()
        return len(updated)

    def run_ai_analysis(
        self, force: bool = False, on_progress: ProgressCallback | None = None
    ) -> int:
        """Tag photographs without AI tags (all of them when `force`). Returns count updated."""
        targets = [p for p in self.photos if not p.ai_tag_ids]
        if not targets:
            if not force:
                logger.info("All photographs already carry AI tags")
                return 0
            targets = list(self.photos)
        results = asyncio.run(self._tagger.tag_photographs(targets, on_progress))
        return self._apply_ai_results(results)

    def harmonize_tags(self, on_progress: ProgressCallback | None = None) -> int:
        """Rewrite AI tags toward the library-wide vocabulary. Returns count updated."""
        targets = [p for p in self.photos if p.ai_tag_ids]
        if not targets:
            return 0
        results = asyncio.run(self._tagger.harmonize(targets, self.catalog(), on_progress))
        return self._apply_ai_results(results, harmonization_version=HARMONIZATION_VERSION)

    def reset_workspace(self) -> None:
        """Clear the repository and every loaded photograph."""
        self._repo.clear()
        self.photos = []
        self.tags = self._repo.get_tag_definitions()
        self.selected_ids = set()
        self._notify()
