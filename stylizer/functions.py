"""Serverless function bodies: stylize, train and status.

Each function takes its collaborators explicitly and returns
``(status_code, body)``; ``api/index.py`` handles routing and the wire format.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx

from stylizer.archive import ArchiveError, extract_images
from stylizer.config import Settings
from stylizer.imaging import resize_image
from stylizer.models import STYLIZED_PORTRAIT, SessionStatus, TrainingSession
from stylizer.providers import (
    ImageProvider,
    OpenAIStylizer,
    ReplicateTrainer,
    TrainingError,
    download_image,
)
from stylizer.storage import StorageError, SupabaseStore, create_store
from stylizer.styles import build_portrait_prompt, parse_style

logger = logging.getLogger(__name__)

Result = tuple[int, dict[str, Any]]


def _error(status: int, message: str) -> Result:
    return status, {"error": message}


def stylize(
    payload: dict[str, Any],
    settings: Settings,
    stylizer: OpenAIStylizer | None = None,
    store: SupabaseStore | None = None,
) -> Result:
    """Generate a stylized image for ``payload["style"]`` and record it on the image row.

    Configuration is checked before anything else touches a service; the
    admin store is only built when there is an ``imageId`` to update.
    """
    if not payload.get("image"):
        return _error(400, "Image is required")

    settings.require("openai_api_key")
    settings.require_supabase_admin()

    try:
        style = parse_style(payload.get("style"))
    except ValueError as e:
        return _error(400, str(e))

    stylizer = stylizer or OpenAIStylizer(api_key=settings.openai_api_key)
    _, output = stylizer.stylize(style)

    image_id = payload.get("imageId")
    if image_id:
        store = store or create_store(settings, admin=True)
        try:
            store.update_image_record(str(image_id), processed_url=output)
        except StorageError as e:
            logger.error("Error updating image record: %s", e)

    return 200, {"url": output}


def start_training(
    payload: dict[str, Any],
    settings: Settings,
    store: SupabaseStore,
    trainer: ReplicateTrainer,
    http: httpx.Client | None = None,
) -> Result:
    """Check the uploaded archive, start a provider training and link it to the session row."""
    training_data_url = payload.get("training_data_url")
    trigger_word = payload.get("trigger_word")
    session_id = payload.get("session_id")
    if not training_data_url or not trigger_word or not session_id:
        return _error(400, "training_data_url, trigger_word and session_id are required")
    session_id = str(session_id)

    try:
        images = extract_images(download_image(training_data_url, http=http))
    except (httpx.HTTPError, ArchiveError) as e:
        logger.error("[%s] Could not read training archive: %s", session_id, e)
        store.update_training_session(session_id, status=SessionStatus.FAILED, error=str(e))
        return _error(400, "Could not read training archive")
    if not images:
        store.update_training_session(
            session_id, status=SessionStatus.FAILED, error="Training archive contains no images"
        )
        return _error(400, "Training archive contains no images")

    logger.info("[%s] Training archive holds %d images", session_id, len(images))

    try:
        training_id = trainer.start(training_data_url, trigger_word)
    except TrainingError as e:
        logger.error("[%s] %s", session_id, e)
        store.update_training_session(session_id, status=SessionStatus.FAILED, error=str(e))
        return _error(500, "Failed to start training")

    store.update_training_session(session_id, training_id=training_id, progress=0.0)
    return 200, {
        "session_id": session_id,
        "training_id": training_id,
        "status": SessionStatus.PROCESSING.value,
    }


def _status_body(session: TrainingSession) -> dict[str, Any]:
    body: dict[str, Any] = {
        "session_id": session.id,
        "status": session.status.value,
        "progress": session.progress,
    }
    if session.error:
        body["error"] = session.error
    return body


def render_portrait(
    store: SupabaseStore,
    session: TrainingSession,
    generator: ImageProvider,
    style: str | None = None,
) -> str:
    """Generate the trained portrait, shrink it and store it as the session's stylized image."""
    prompt = build_portrait_prompt(session.trigger_word, style=style)
    raw = generator.generate(prompt)
    return store.upload_portrait(session.user_id, session.trigger_word, STYLIZED_PORTRAIT, resize_image(raw))


def training_status(
    user_id: str,
    trigger_word: str,
    store: SupabaseStore,
    trainer: ReplicateTrainer,
    generator_factory: Callable[[str], ImageProvider],
) -> Result:
    """Refresh a processing session from the provider and report its status.

    On the first completed refresh the portrait is rendered with the new
    model before the row is marked completed, so readers never see a
    completed session without its stylized image.
    """
    session = store.find_training_session(user_id, trigger_word)
    if session is None:
        return _error(404, "Training session not found")

    if session.status is not SessionStatus.PROCESSING or not session.training_id:
        return 200, _status_body(session)

    try:
        update = trainer.fetch(session.training_id)
    except TrainingError as e:
        logger.error("[%s] %s", session.id, e)
        return _error(502, str(e))

    fields: dict[str, Any] = {"status": update.status, "progress": update.progress}
    if update.status is SessionStatus.COMPLETED:
        fields["model_version"] = update.model_version
        try:
            render_portrait(store, session, generator_factory(update.model_version))
        except (RuntimeError, ValueError, httpx.HTTPError) as e:
            logger.error("[%s] Portrait generation failed: %s", session.id, e)
            fields["status"] = SessionStatus.FAILED
            fields["error"] = f"Portrait generation failed: {e}"
    elif update.error:
        fields["error"] = update.error

    store.update_training_session(session.id, **fields)

    session.status = fields["status"]
    session.progress = update.progress
    session.model_version = fields.get("model_version", session.model_version)
    session.error = fields.get("error")
    logger.info("[%s] %s at %.1f%%", session.id, session.status.value, session.progress)
    return 200, _status_body(session)
