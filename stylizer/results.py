"""Result page glue: confirm training finished and sign the portrait URLs."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from stylizer.config import Settings
from stylizer.models import ORIGINAL_PORTRAIT, PORTRAIT_BUCKET, STYLIZED_PORTRAIT, PortraitResult, SessionStatus
from stylizer.providers import download_image
from stylizer.storage import SIGNED_URL_TTL_S, StorageError, SupabaseStore

logger = logging.getLogger(__name__)

STILL_TRAINING = "Training is still in progress"
LOAD_FAILED = "Failed to load images"
DOWNLOAD_FAILED = "Failed to download image"


class ResultError(RuntimeError):
    """User-facing failure while loading or downloading a result."""


class NotOwnerError(ResultError):
    """The requested result does not belong to the current session."""


def status_url(settings: Settings, user_id: str, trigger_word: str) -> str:
    return f"{settings.training_api_url}/status/{quote(user_id, safe='')}/{quote(trigger_word, safe='')}"


def fetch_status(settings: Settings, user_id: str, trigger_word: str, http: httpx.Client | None = None) -> dict:
    url = status_url(settings, user_id, trigger_word)
    if http is not None:
        return http.get(url).json()
    with httpx.Client(timeout=30) as client:
        return client.get(url).json()


def load_result(
    store: SupabaseStore,
    settings: Settings,
    user_id: str,
    trigger_word: str,
    session_owner: str | None,
    http: httpx.Client | None = None,
) -> PortraitResult:
    """Return signed URLs for the original and stylized portraits.

    Raises NotOwnerError when ``session_owner`` is not ``user_id`` and
    ResultError when training is unfinished or a lookup fails.
    """
    if not user_id or not trigger_word or session_owner != user_id:
        raise NotOwnerError("Result not available for this session")

    try:
        status = fetch_status(settings, user_id, trigger_word, http=http)
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Error loading images: %s", e)
        raise ResultError(LOAD_FAILED) from e

    if status.get("error"):
        raise ResultError(status["error"])
    if status.get("status") != SessionStatus.COMPLETED.value:
        raise ResultError(STILL_TRAINING)

    prefix = f"{user_id}/{trigger_word}"
    try:
        original_url = store.signed_url(PORTRAIT_BUCKET, f"{prefix}/{ORIGINAL_PORTRAIT}", SIGNED_URL_TTL_S)
        stylized_url = store.signed_url(PORTRAIT_BUCKET, f"{prefix}/{STYLIZED_PORTRAIT}", SIGNED_URL_TTL_S)
    except StorageError as e:
        logger.error("Error loading images: %s", e)
        raise ResultError(str(e)) from e

    return PortraitResult(
        user_id=user_id,
        trigger_word=trigger_word,
        original_url=original_url,
        stylized_url=stylized_url,
    )


def fetch_portrait(url: str, http: httpx.Client | None = None) -> bytes:
    try:
        return download_image(url, http=http)
    except httpx.HTTPError as e:
        logger.error("Failed to download image: %s", e)
        raise ResultError(DOWNLOAD_FAILED) from e
