from __future__ import annotations

import logging

from fastapi import APIRouter

from timetable_engine.core.config import get_settings
from timetable_engine.schemas.generator import (
    GenerateTimetableRequest,
    GenerateTimetableResponse,
    GenerationSettings,
)
from timetable_engine.services.timetable_engine import TimetableEngine

router = APIRouter()
logger = logging.getLogger(__name__)


def _runtime_tuned_settings(requested: GenerationSettings | None) -> GenerationSettings:
    app_settings = get_settings()
    if requested is None:
        requested = GenerationSettings(placement_policy=app_settings.default_placement_policy)
    tuned = GenerationSettings.model_validate(requested.model_dump())

    # Keep interactive requests bounded regardless of what the client asks for.
    limit = app_settings.request_time_limit_seconds
    if tuned.time_limit_seconds is None or tuned.time_limit_seconds > limit:
        tuned.time_limit_seconds = limit
    tuned.evaluation_workers = min(tuned.evaluation_workers, app_settings.max_evaluation_workers)
    return GenerationSettings.model_validate(tuned.model_dump())


@router.post("/timetable/generate", response_model=GenerateTimetableResponse)
def generate_timetable(payload: GenerateTimetableRequest) -> GenerateTimetableResponse:
    settings = _runtime_tuned_settings(payload.settings)
    logger.info(
        "Generate request policy=%s classes=%s subjects=%s time_limit=%s",
        settings.placement_policy,
        len(payload.classes),
        len(payload.subjects),
        settings.time_limit_seconds,
    )
    return TimetableEngine(payload, settings).run()
