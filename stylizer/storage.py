"""Supabase glue: auth lookups, storage buckets and the sessions/images tables."""

from __future__ import annotations

import logging
import time
from typing import Any

from supabase import Client, create_client

from stylizer.config import Settings
from stylizer.models import (
    IMAGES_TABLE,
    PORTRAIT_BUCKET,
    SESSIONS_TABLE,
    TRAINING_BUCKET,
    ImageRecord,
    SessionStatus,
    TrainingSession,
)

logger = logging.getLogger(__name__)

SIGNED_URL_TTL_S = 3600


class StorageError(RuntimeError):
    """A Supabase storage, table or auth call failed."""


def create_store(settings: Settings, admin: bool = False) -> SupabaseStore:
    """Build a store from settings; ``admin`` uses the service-role key."""
    if admin:
        settings.require_supabase_admin()
        key = settings.supabase_service_role_key
    else:
        if not settings.supabase_url or not settings.supabase_anon_key:
            raise ValueError("Missing Supabase environment variables")
        key = settings.supabase_anon_key
    return SupabaseStore(create_client(settings.supabase_url, key))


class SupabaseStore:
    """Thin wrapper over a ``supabase.Client`` speaking this app's tables and buckets."""

    def __init__(self, client: Client) -> None:
        self.client = client

    # -- auth -----------------------------------------------------------------

    def sign_in(self, email: str, password: str) -> str:
        """Sign in with email/password and return the user id."""
        try:
            response = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            raise StorageError(f"Sign in failed: {e}") from e
        if response.user is None:
            raise StorageError("Sign in failed")
        return str(response.user.id)

    def get_user(self, access_token: str | None = None) -> str | None:
        """Return the id of the signed-in user, or None when there is no valid session."""
        try:
            response = self.client.auth.get_user(access_token) if access_token else self.client.auth.get_user()
        except Exception as e:
            logger.error("Error checking auth: %s", e)
            return None
        if response is None or response.user is None:
            return None
        return str(response.user.id)

    # -- storage --------------------------------------------------------------

    def upload_training_archive(self, user_id: str, trigger_word: str, data: bytes) -> tuple[str, str]:
        """Upload a training ZIP and return ``(path, public_url)``."""
        path = f"{user_id}/{trigger_word}/{int(time.time() * 1000)}.zip"
        bucket = self.client.storage.from_(TRAINING_BUCKET)
        try:
            bucket.upload(path, data, {"content-type": "application/zip"})
        except Exception as e:
            logger.error("Training archive upload failed for %s: %s", path, e)
            raise StorageError("Failed to upload training data") from e

        public_url = bucket.get_public_url(path)
        logger.info("Uploaded training archive %s (%d bytes)", path, len(data))
        return path, public_url

    def upload_portrait(self, user_id: str, trigger_word: str, name: str, data: bytes) -> str:
        """Store a portrait JPEG under ``{user}/{trigger}/{name}``, replacing any previous one."""
        path = f"{user_id}/{trigger_word}/{name}"
        try:
            self.client.storage.from_(PORTRAIT_BUCKET).upload(
                path, data, {"content-type": "image/jpeg", "upsert": "true"}
            )
        except Exception as e:
            logger.error("Portrait upload failed for %s: %s", path, e)
            raise StorageError(f"Failed to upload {name}") from e
        return path

    def signed_url(self, bucket: str, path: str, expires_in: int = SIGNED_URL_TTL_S) -> str:
        try:
            result = self.client.storage.from_(bucket).create_signed_url(path, expires_in)
        except Exception as e:
            raise StorageError(f"Failed to sign {path}: {e}") from e
        url = result.get("signedURL") or result.get("signedUrl")
        if not url:
            raise StorageError(f"Failed to sign {path}")
        return url

    # -- training_sessions ----------------------------------------------------

    def create_training_session(
        self,
        user_id: str,
        trigger_word: str,
        training_data_url: str,
        num_images: int,
    ) -> TrainingSession:
        row = {
            "user_id": user_id,
            "trigger_word": trigger_word,
            "training_data_url": training_data_url,
            "status": SessionStatus.PROCESSING.value,
            "num_images": num_images,
        }
        try:
            result = self.client.table(SESSIONS_TABLE).insert(row).execute()
        except Exception as e:
            logger.error("Insert into %s failed: %s", SESSIONS_TABLE, e)
            raise StorageError("Failed to save training record") from e
        if not result.data:
            raise StorageError("Failed to save training record")
        return TrainingSession.from_row(result.data[0])

    def get_training_session(self, session_id: str) -> TrainingSession | None:
        result = self.client.table(SESSIONS_TABLE).select("*").eq("id", session_id).limit(1).execute()
        if not result.data:
            return None
        return TrainingSession.from_row(result.data[0])

    def find_training_session(self, user_id: str, trigger_word: str) -> TrainingSession | None:
        """Return the most recent session for this user and trigger word."""
        result = (
            self.client.table(SESSIONS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("trigger_word", trigger_word)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return TrainingSession.from_row(result.data[0])

    def update_training_session(self, session_id: str, **fields: Any) -> None:
        row = {k: v.value if isinstance(v, SessionStatus) else v for k, v in fields.items()}
        try:
            self.client.table(SESSIONS_TABLE).update(row).eq("id", session_id).execute()
        except Exception as e:
            raise StorageError(f"Failed to update training session {session_id}: {e}") from e

    # -- images ---------------------------------------------------------------

    def create_image_record(self, user_id: str, original_url: str, style: str) -> ImageRecord:
        row = {
            "user_id": user_id,
            "original_url": original_url,
            "style": style,
            "status": SessionStatus.PROCESSING.value,
        }
        try:
            result = self.client.table(IMAGES_TABLE).insert(row).execute()
        except Exception as e:
            raise StorageError("Failed to save image record") from e
        if not result.data:
            raise StorageError("Failed to save image record")
        return ImageRecord.from_row(result.data[0])

    def update_image_record(
        self,
        image_id: str,
        processed_url: str,
        status: SessionStatus = SessionStatus.COMPLETED,
    ) -> None:
        try:
            self.client.table(IMAGES_TABLE).update(
                {"processed_url": processed_url, "status": status.value}
            ).eq("id", image_id).execute()
        except Exception as e:
            raise StorageError(f"Failed to update image record {image_id}: {e}") from e
