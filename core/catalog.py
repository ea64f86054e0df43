"""Immutable per-recompute snapshot of photographs and tag definitions."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from core.models import Photograph, Tag


class PhotoCatalog:
    """Read-only view over the photographs and tags supplied by the application.

    A new catalog is built whenever the photo list or tag definitions change;
    the engine never mutates one in place. Tag ids with no definition are
    tolerated everywhere (lookups return None).
    """

    def __init__(self, photos: Iterable[Photograph] = (), tags: Iterable[Tag] = ()) -> None:
        self._photos: tuple[Photograph, ...] = tuple(photos)
        self._tags: tuple[Tag, ...] = tuple(tags)
        self._photos_by_id = {p.id: p for p in self._photos}
        self._tags_by_id: dict[str, Tag] = {}
        for tag in self._tags:
            self._tags_by_id.setdefault(tag.id, tag)

    @property
    def photos(self) -> tuple[Photograph, ...]:
        return self._photos

    @property
    def tags(self) -> tuple[Tag, ...]:
        return self._tags

    def __len__(self) -> int:
        return len(self._photos)

    def __iter__(self) -> Iterator[Photograph]:
        return iter(self._photos)

    def __contains__(self, photo_id: object) -> bool:
        return photo_id in self._photos_by_id

    def photo(self, photo_id: str) -> Photograph | None:
        return self._photos_by_id.get(photo_id)

    def tag(self, tag_id: str) -> Tag | None:
        return self._tags_by_id.get(tag_id)

    def resolve_tags(self, tag_ids: Iterable[str]) -> list[Tag]:
        """Map ids to tag records, silently skipping unknown ids."""
        resolved: list[Tag] = []
        for tag_id in tag_ids:
            tag = self._tags_by_id.get(tag_id)
            if tag is not None:
                resolved.append(tag)
        return resolved

    def tag_labels(self, photo: Photograph) -> list[str]:
        """Lowercased labels of every resolvable tag on `photo`."""
        return [t.label.lower() for t in self.resolve_tags(photo.all_tag_ids)]
