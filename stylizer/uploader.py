"""Client upload session: collect photos, pick a trigger word, upload, start training and wait."""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from stylizer.archive import pack_training_images
from stylizer.config import Settings
from stylizer.imaging import ImageProcessingError, resize_image
from stylizer.models import (
    MAX_IMAGES,
    MIN_IMAGES,
    ORIGINAL_PORTRAIT,
    PORTRAIT_BUCKET,
    TrainingSession,
    generate_trigger_word,
)
from stylizer.poller import poll_training_session
from stylizer.results import status_url
from stylizer.storage import StorageError, SupabaseStore

logger = logging.getLogger(__name__)

TOO_MANY_IMAGES = f"You can only upload up to {MAX_IMAGES} images. Please remove some images first."
PROCESSING_FAILED = "Failed to process images. Please try again with different images."
START_FAILED = "Failed to start training"
STYLIZE_FAILED = "Something went wrong. Please try again."
BAD_TRIGGER_WORD = "Trigger words may only use letters, numbers and underscores."

_TRIGGER_WORD = re.compile(r"[A-Z0-9_]*")

# Folder under the user prefix for one-off style uploads
STYLE_UPLOADS = "styles"


class UploadError(RuntimeError):
    """User-facing failure while preparing or submitting a training upload."""


@dataclass
class TrainingPhoto:
    name: str
    data: bytes


@dataclass
class UploadSession:
    store: SupabaseStore
    user_id: str
    settings: Settings = field(default_factory=Settings)
    http: httpx.Client | None = None
    photos: list[TrainingPhoto] = field(default_factory=list)
    trigger_word: str = field(default_factory=generate_trigger_word)
    session: TrainingSession | None = None

    # -- photo list -----------------------------------------------------------

    def add_images(self, files: list[tuple[str, bytes]]) -> list[TrainingPhoto]:
        """Resize and append ``(name, data)`` uploads; all-or-nothing."""
        if not files:
            return []
        if len(files) + len(self.photos) > MAX_IMAGES:
            raise UploadError(TOO_MANY_IMAGES)

        try:
            added = [TrainingPhoto(name=name, data=resize_image(data)) for name, data in files]
        except ImageProcessingError as e:
            logger.error("Error processing images: %s", e)
            raise UploadError(PROCESSING_FAILED) from e

        self.photos.extend(added)
        return added

    def remove_image(self, index: int) -> None:
        if 0 <= index < len(self.photos):
            del self.photos[index]

    def regenerate_trigger_word(self) -> str:
        self.trigger_word = generate_trigger_word()
        return self.trigger_word

    def set_trigger_word(self, value: str) -> None:
        """Uppercase and store ``value``; it ends up in URLs and storage paths."""
        word = value.strip().upper()
        if not _TRIGGER_WORD.fullmatch(word):
            raise UploadError(BAD_TRIGGER_WORD)
        self.trigger_word = word

    @property
    def can_submit(self) -> bool:
        return bool(self.user_id) and len(self.photos) >= MIN_IMAGES and bool(self.trigger_word)

    # -- submit ---------------------------------------------------------------

    def _post(self, url: str, payload: dict) -> httpx.Response:
        if self.http is not None:
            return self.http.post(url, json=payload)
        with httpx.Client(timeout=60) as client:
            return client.post(url, json=payload)

    def submit(self) -> TrainingSession:
        """Pack, upload, record and start training. Returns the new session."""
        if not self.can_submit:
            raise UploadError(f"Upload at least {MIN_IMAGES} photos and set a trigger word first.")

        archive = pack_training_images(photo.data for photo in self.photos)
        try:
            _, public_url = self.store.upload_training_archive(self.user_id, self.trigger_word, archive)
            session = self.store.create_training_session(
                user_id=self.user_id,
                trigger_word=self.trigger_word,
                training_data_url=public_url,
                num_images=len(self.photos),
            )
            self.store.upload_portrait(self.user_id, self.trigger_word, ORIGINAL_PORTRAIT, self.photos[0].data)
        except StorageError as e:
            raise UploadError(str(e)) from e

        try:
            response = self._post(
                f"{self.settings.training_api_url}/train",
                {
                    "training_data_url": public_url,
                    "trigger_word": self.trigger_word,
                    "session_id": session.id,
                },
            )
        except httpx.HTTPError as e:
            logger.error("Training request failed: %s", e)
            raise UploadError(START_FAILED) from e
        if not response.is_success:
            logger.error("Training request returned %d: %s", response.status_code, response.text)
            raise UploadError(START_FAILED)

        logger.info("Started training session %s for %s", session.id, self.trigger_word)
        self.session = session
        return session

    # -- wait -----------------------------------------------------------------

    def _get(self, url: str) -> httpx.Response:
        if self.http is not None:
            return self.http.get(url)
        with httpx.Client(timeout=30) as client:
            return client.get(url)

    def _refresh(self, session_id: str) -> TrainingSession | None:
        # The status endpoint pulls provider state into the row before we read it
        try:
            self._get(status_url(self.settings, self.user_id, self.trigger_word))
        except httpx.HTTPError as e:
            logger.warning("Status refresh failed: %s", e)
        return self.store.get_training_session(session_id)

    def wait(
        self,
        on_progress: Callable[[float], None] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> TrainingSession:
        """Block until the submitted session completes; see poll_training_session."""
        if self.session is None:
            raise UploadError("Nothing submitted yet")
        kwargs = {} if sleep is None else {"sleep": sleep}
        return poll_training_session(
            self._refresh,
            self.session.id,
            interval=self.settings.poll_interval_s,
            max_polls=self.settings.max_polls,
            on_progress=on_progress,
            **kwargs,
        )


def stylize_photo(
    store: SupabaseStore,
    settings: Settings,
    user_id: str,
    data: bytes,
    style: str,
    http: httpx.Client | None = None,
) -> str:
    """Upload one photo, record it and ask the stylize function for an image. Returns its URL."""
    try:
        photo = resize_image(data)
    except ImageProcessingError as e:
        raise UploadError(PROCESSING_FAILED) from e

    name = f"{uuid.uuid4().hex}.jpg"
    try:
        path = store.upload_portrait(user_id, STYLE_UPLOADS, name, photo)
        original_url = store.signed_url(PORTRAIT_BUCKET, path)
        record = store.create_image_record(user_id, original_url, style)
    except StorageError as e:
        raise UploadError(str(e)) from e

    payload = {"image": original_url, "style": style, "imageId": record.id}
    url = f"{settings.training_api_url}/stylize"
    try:
        if http is not None:
            response = http.post(url, json=payload)
        else:
            with httpx.Client(timeout=180) as client:
                response = client.post(url, json=payload)
        body = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Stylize request failed: %s", e)
        raise UploadError(STYLIZE_FAILED) from e

    if not response.is_success or not body.get("url"):
        raise UploadError(body.get("error") or STYLIZE_FAILED)
    return body["url"]
