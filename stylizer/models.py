"""Data models for training sessions, stylized images and portrait results."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Any

MIN_IMAGES = 12
MAX_IMAGES = 20

IMAGE_REQUIREMENTS: list[str] = [
    "Different facial expressions (smiling, neutral, serious)",
    "Various angles (front, profile, 3/4 view)",
    "Different lighting conditions",
    "Various backgrounds",
    "High-quality, clear photos",
]

TRIGGER_WORD_PREFIX = "PERSON_"
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

TRAINING_BUCKET = "training_data"
PORTRAIT_BUCKET = "public-images"
SESSIONS_TABLE = "training_sessions"
IMAGES_TABLE = "images"

ORIGINAL_PORTRAIT = "original.jpg"
STYLIZED_PORTRAIT = "stylized.jpg"


class SessionStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def from_provider(cls, status: str | None) -> SessionStatus:
        """Map a training/prediction provider status onto the three session states."""
        value = (status or "").lower()
        if value == "succeeded":
            return cls.COMPLETED
        if value in ("failed", "canceled", "cancelled", "aborted"):
            return cls.FAILED
        return cls.PROCESSING

    @property
    def is_terminal(self) -> bool:
        return self is not SessionStatus.PROCESSING


class ArtStyle(str, Enum):
    GHIBLI = "ghibli"
    SIMPSONS = "simpsons"
    CARTOON = "cartoon"
    PIXAR = "pixar"


def generate_trigger_word() -> str:
    """Return a fresh trigger word such as ``PERSON_X7K2Q``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(5))
    return f"{TRIGGER_WORD_PREFIX}{suffix.upper()}"


@dataclass
class TrainingSession:
    id: str
    user_id: str
    trigger_word: str
    training_data_url: str = ""
    status: SessionStatus = SessionStatus.PROCESSING
    progress: float = 0.0
    num_images: int = 0
    training_id: str | None = None
    model_version: str | None = None
    error: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> TrainingSession:
        return cls(
            id=str(row["id"]),
            user_id=str(row.get("user_id", "")),
            trigger_word=row.get("trigger_word", ""),
            training_data_url=row.get("training_data_url") or "",
            status=SessionStatus(row.get("status") or SessionStatus.PROCESSING.value),
            progress=float(row.get("progress") or 0.0),
            num_images=int(row.get("num_images") or 0),
            training_id=row.get("training_id"),
            model_version=row.get("model_version"),
            error=row.get("error"),
        )


@dataclass
class ImageRecord:
    id: str
    user_id: str = ""
    original_url: str = ""
    processed_url: str | None = None
    style: str | None = None
    status: SessionStatus = SessionStatus.PROCESSING

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ImageRecord:
        return cls(
            id=str(row["id"]),
            user_id=str(row.get("user_id", "")),
            original_url=row.get("original_url") or "",
            processed_url=row.get("processed_url"),
            style=row.get("style"),
            status=SessionStatus(row.get("status") or SessionStatus.PROCESSING.value),
        )


@dataclass
class TrainingUpdate:
    """Snapshot of a provider-side training run."""

    status: SessionStatus
    progress: float = 0.0
    model_version: str | None = None
    error: str | None = None


@dataclass
class PortraitResult:
    user_id: str
    trigger_word: str
    original_url: str
    stylized_url: str
