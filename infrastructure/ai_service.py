"""Batched AI tagging and tag harmonization through Gemini.

Both operations run asynchronously in small fixed-size concurrent batches
with a pause between batches, reporting `(completed, total)` after each
batch. A failed call is logged and yields empty tags for the affected
photographs; it never aborts the remaining batches.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Callable, Iterable
import io
import json
from typing import Any

from google import genai
from google.genai import types
from loguru import logger
from PIL import Image

from core.catalog import PhotoCatalog
from core.models import Photograph, Tag, TagType
from core.services.interfaces import AITagResult

DEFAULT_MODEL = "gemini-2.5-flash"
TAG_BATCH_SIZE = 3
HARMONIZE_BATCH_SIZE = 5
BATCH_DELAY_SECONDS = 0.2
MAX_TAGS_PER_IMAGE = 20
PREFERRED_TAG_LIMIT = 150
AI_IMAGE_MAX_DIM = 512
HARMONIZATION_VERSION = 1

ProgressCallback = Callable[[int, int], None]

TAGGING_PROMPT = """Analyze this photograph for a photographer's asset management system.
Generate exactly 20 unique, high-quality conceptual tags.

STRATEGY FOR INTERCONNECTED WEB:
1. Broad Connectors (10 tags): broad themes (e.g. "Portrait", "Natural Light", "Urban",
   "Melancholy") likely to overlap with other images in a diverse collection.
2. Unique Inferences (10 tags): specific, evocative, or abstract tags (e.g. "Suburban Ennui",
   "Cobalt Haze", "Fugitive Moment") capturing the unique essence of this image.

Focus on mood and emotional resonance, subtle expressions or body language, specific color
tones (e.g. "Crimson", "Desaturated Cyan"), and aesthetic style (e.g. "Cinematic", "Lo-Fi").

Return ONLY the tags as a JSON array."""

HARMONIZE_PROMPT = """You are a Semantic Harmonizer for a photography database.

Goal: increase the overlap of tags between images to create a denser network graph.
Requirement: less than 25% of tags for any image should be unique to that image.

Input: a batch of images with their CURRENT tags.
Context: PREFERRED COMMON TAGS found frequently in the wider library:
{preferred}

Instructions:
1. Rewrite the tags for each image.
2. Aggressively use tags from the PREFERRED COMMON TAGS list when semantically relevant.
3. Consolidate specific synonyms into these common terms (e.g. "Scarlet" -> "Red").
4. Keep unique tags ONLY if critical to the image's distinct character.
5. Return exactly 15-20 tags per image.

Input Data:
{payload}"""

_STRING_LIST = types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING))

TAGGING_SCHEMA = types.Schema(type=types.Type.OBJECT, properties={"tags": _STRING_LIST})

HARMONIZE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "results": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={"id": types.Schema(type=types.Type.STRING), "tags": _STRING_LIST},
            ),
        )
    },
)


def labels_to_tags(labels: Iterable[Any], limit: int = MAX_TAGS_PER_IMAGE) -> list[Tag]:
    """Turn raw model labels into AI-generated tags, deduplicated by id."""
    tags: list[Tag] = []
    seen: set[str] = set()
    for label in labels:
        if not isinstance(label, str) or not label.strip():
            continue
        tag = Tag.from_label(label, TagType.AI_GENERATED)
        if not tag.id or tag.id in seen:
            continue
        seen.add(tag.id)
        tags.append(tag)
        if len(tags) >= limit:
            break
    return tags


def top_tag_labels(catalog: PhotoCatalog, limit: int = PREFERRED_TAG_LIMIT) -> list[str]:
    """Labels of the most frequently assigned tags across the library."""
    counts: Counter[str] = Counter()
    for photo in catalog:
        counts.update(photo.all_tag_ids)
    labels: list[str] = []
    for tag_id, _ in counts.most_common():
        tag = catalog.tag(tag_id)
        if tag is not None:
            labels.append(tag.label)
        if len(labels) >= limit:
            break
    return labels


def encode_for_model(path: str, max_dim: int = AI_IMAGE_MAX_DIM) -> bytes:
    """JPEG bytes of the image at `path` bounded by `max_dim`."""
    with Image.open(path) as im:
        rgb = im.convert("RGB")
        rgb.thumbnail((max_dim, max_dim))
        buf = io.BytesIO()
        rgb.save(buf, format="JPEG", quality=80)
        return buf.getvalue()


def _parse_json(text: str | None) -> dict[str, Any]:
    payload = json.loads(text or "{}")
    if isinstance(payload, list):
        return {"tags": payload}
    return payload if isinstance(payload, dict) else {}


class GeminiTagService:
    """Gemini-backed tagging collaborator."""

    def __init__(
        self,
        client: Any | None = None,
        model: str = DEFAULT_MODEL,
        batch_size: int = TAG_BATCH_SIZE,
        harmonize_batch_size: int = HARMONIZE_BATCH_SIZE,
        batch_delay: float = BATCH_DELAY_SECONDS,
    ) -> None:
        self._client = client
        self._model = model
        self._batch_size = max(1, int(batch_size))
        self._harmonize_batch_size = max(1, int(harmonize_batch_size))
        self._batch_delay = max(0.0, float(batch_delay))

    @classmethod
    def from_settings(cls, settings: Any) -> GeminiTagService:
        return cls(
            model=str(settings.get("ai.model", DEFAULT_MODEL)),
            batch_size=settings.get_int("ai.batch_size", TAG_BATCH_SIZE),
            harmonize_batch_size=settings.get_int("ai.harmonize_batch_size", HARMONIZE_BATCH_SIZE),
            batch_delay=settings.get_float("ai.batch_delay_seconds", BATCH_DELAY_SECONDS),
        )

    @property
    def client(self) -> Any:
        # Created on first use; genai reads GEMINI_API_KEY / GOOGLE_API_KEY
        if self._client is None:
            self._client = genai.Client()
        return self._client

    async def generate_tags(self, photo: Photograph) -> AITagResult:
        """Ask the model for conceptual tags describing one photograph."""
        if not photo.file_path:
            logger.warning("No file path for {}; skipping AI tagging", photo.file_name)
            return AITagResult(photo_id=photo.id)
        try:
            image_bytes = await asyncio.to_thread(encode_for_model, photo.file_path)
            response = await self.client.aio.models.generate_content(
                model=self._model,
                contents=[
                    types.Part.from_bytes(data=image_bytes, mime_type="image/jpeg"),
                    TAGGING_PROMPT,
                ],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=TAGGING_SCHEMA,
                    temperature=0.7,
                ),
            )
            tags = labels_to_tags(_parse_json(response.text).get("tags") or [])
        except Exception as ex:  # pylint: disable=broad-exception-caught
            logger.error("AI tagging failed for {}: {}", photo.file_name, ex)
            return AITagResult(photo_id=photo.id)
        return AITagResult(photo_id=photo.id, tags=tags, tag_ids=[t.id for t in tags])

    async def tag_photographs(
        self, photos: list[Photograph], on_progress: ProgressCallback | None = None
    ) -> list[AITagResult]:
        """Tag `photos` in concurrent batches."""
        results: list[AITagResult] = []
        total = len(photos)
        for start in range(0, total, self._batch_size):
            batch = photos[start : start + self._batch_size]
            results.extend(await asyncio.gather(*(self.generate_tags(p) for p in batch)))
            completed = min(start + len(batch), total)
            logger.info("AI tagging progress {}/{}", completed, total)
            if on_progress is not None:
                on_progress(completed, total)
            if completed < total:
                await asyncio.sleep(self._batch_delay)
        return results

    async def _harmonize_batch(
        self, batch: list[Photograph], catalog: PhotoCatalog, preferred: list[str]
    ) -> list[AITagResult]:
        payload = [
            {
                "id": photo.id,
                "currentTags": [
                    (catalog.tag(tid).label if catalog.tag(tid) else tid)
                    for tid in photo.all_tag_ids
                ],
            }
            for photo in batch
        ]
        prompt = HARMONIZE_PROMPT.format(
            preferred=json.dumps(preferred[:PREFERRED_TAG_LIMIT]), payload=json.dumps(payload)
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=HARMONIZE_SCHEMA,
                    temperature=0.3,
                ),
            )
            entries = _parse_json(response.text).get("results") or []
        except Exception as ex:  # pylint: disable=broad-exception-caught
            logger.error("Harmonization batch failed: {}", ex)
            return []

        batch_ids = {p.id for p in batch}
        results: list[AITagResult] = []
        for entry in entries:
            if not isinstance(entry, dict) or entry.get("id") not in batch_ids:
                continue
            tags = labels_to_tags(entry.get("tags") or [])
            results.append(
                AITagResult(photo_id=entry["id"], tags=tags, tag_ids=[t.id for t in tags])
            )
        return results

    async def harmonize(
        self,
        photos: list[Photograph],
        catalog: PhotoCatalog,
        on_progress: ProgressCallback | None = None,
    ) -> list[AITagResult]:
        """Rewrite AI tags toward the library's most common vocabulary."""
        preferred = top_tag_labels(catalog)
        results: list[AITagResult] = []
        total = len(photos)
        for start in range(0, total, self._harmonize_batch_size):
            batch = photos[start : start + self._harmonize_batch_size]
            results.extend(await self._harmonize_batch(batch, catalog, preferred))
            completed = min(start + len(batch), total)
            logger.info("Harmonization progress {}/{}", completed, total)
            if on_progress is not None:
                on_progress(completed, total)
            if completed < total:
                await asyncio.sleep(self._batch_delay)
        return results
