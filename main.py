from __future__ import annotations

import random
import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication, QTimer
from loguru import logger

from app.viewmodels.experience_vm import ExperienceVM
from app.viewmodels.workbench_vm import WorkbenchVM
from core.models import Tag, TagType
from core.services.layout_service import LayoutSimulator, Viewport
from core.services.scoring_service import ScoringOptions, ScoringService
from core.services.visibility_service import VisibilityService
from infrastructure.ai_service import GeminiTagService
from infrastructure.ingest_service import generate_mock_photographs
from infrastructure.logging import find_latest_log_file, init_logging
from infrastructure.settings import JsonSettings
from infrastructure.tag_repository import JsonTagRepository

BASE_DIR = Path(__file__).parent

MOCK_TAG_LABELS = (
    ("Portrait", TagType.CATEGORICAL),
    ("Street", TagType.CATEGORICAL),
    ("Melancholy", TagType.QUALITATIVE),
    ("Golden Hour", TagType.QUALITATIVE),
    ("Black and White", TagType.QUALITATIVE),
)


def _parse_default_sort(settings: JsonSettings) -> list[tuple[str, bool]]:
    # Expect a list like: [{"field":"capture_timestamp","asc":true}, ...]
    raw = settings.get("sorting.defaults", [])
    result: list[tuple[str, bool]] = []
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, dict) and "field" in item:
                result.append((str(item.get("field")), bool(item.get("asc", True))))
    return result


def _load_settings() -> JsonSettings:
    path = BASE_DIR / "settings.json"
    return JsonSettings(path if path.exists() else None)


def main(argv: list[str] | None = None) -> int:
    """Ingest a library (or a mock catalog) and run the Experience frame loop headless."""
    argv = list(sys.argv[1:] if argv is None else argv)
    settings = _load_settings()
    init_logging(
        settings.get_path("logging.dir", "~/.somatic_studio/logs"),
        level=str(settings.get("logging.level", "INFO")),
    )

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    repo = JsonTagRepository(settings.get_path("library.root", "~/SomaticStudio"))
    workbench = WorkbenchVM(
        repo,
        tagger=GeminiTagService.from_settings(settings),
        default_sort=_parse_default_sort(settings),
    )

    scorer = ScoringService(
        ScoringOptions(sensitive_tag_id=str(settings.get("experience.sensitive_tag_id", "nsfw")))
    )
    simulator = LayoutSimulator(
        Viewport(
            settings.get_float("experience.viewport.width", 1280.0),
            settings.get_float("experience.viewport.height", 800.0),
        )
    )
    experience = ExperienceVM(
        simulator=simulator,
        visibility=VisibilityService(scorer),
        frame_interval_ms=settings.get_int("experience.frame_interval_ms", 16),
    )
    workbench.add_listener(experience.set_catalog)
    experience.contextChanged.connect(
        lambda ctx: logger.info(
            "Context: tags={} colors={}",
            [t.label for t in ctx.representative_tags],
            ctx.active_colors,
        )
    )

    if argv:
        added = workbench.load_directory(argv[0])
        logger.info("Loaded {} photographs from {}", added, argv[0])
    else:
        seed_tags = [Tag.from_label(label, kind) for label, kind in MOCK_TAG_LABELS]
        workbench.add_photos(*_mock_catalog(seed_tags))

    if workbench.photos:
        experience.select_photo(workbench.photos[0].id)

    frames = settings.get_int("experience.headless_frames", 180)
    interval = settings.get_int("experience.frame_interval_ms", 16)
    experience.start()
    QTimer.singleShot(frames * interval, app.quit)
    code = app.exec()
    experience.stop()

    visible = len(experience.selection.visible_ids)
    logger.info("Finished after ~{} frames with {} visible nodes", frames, visible)
    log_file = find_latest_log_file(settings.get_path("logging.dir", "~/.somatic_studio/logs"))
    if log_file is not None:
        print(f"Log written to {log_file}")
    return code


def _mock_catalog(seed_tags: list[Tag]):
    photos, created = generate_mock_photographs(48, seed_tags, rng=random.Random(7))
    return photos, seed_tags + created


if __name__ == "__main__":
    raise SystemExit(main())
