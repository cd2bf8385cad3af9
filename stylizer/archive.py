"""ZIP packing of training photos and extension-filtered unpacking."""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from collections.abc import Iterable
from pathlib import PurePosixPath

logger = logging.getLogger(__name__)

TRAINING_FOLDER = "training_images"
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")


class ArchiveError(ValueError):
    """Raised when a training archive cannot be read."""


def training_member_name(index: int) -> str:
    return f"{TRAINING_FOLDER}/image_{index}.jpg"


def pack_training_images(images: Iterable[bytes]) -> bytes:
    """Pack JPEG payloads into ``training_images/image_1.jpg``, ``image_2.jpg``, ..."""
    buf = io.BytesIO()
    count = 0
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for count, data in enumerate(images, start=1):
            zf.writestr(training_member_name(count), data)

    logger.info("Packed %d training images (%d bytes)", count, buf.tell())
    return buf.getvalue()


def _is_hidden(path: PurePosixPath) -> bool:
    return any(part.startswith(".") or part == "__MACOSX" for part in path.parts)


def extract_images(
    data: bytes,
    extensions: tuple[str, ...] = IMAGE_EXTENSIONS,
) -> list[tuple[str, bytes]]:
    """Return ``(name, payload)`` for every archive member with a matching extension.

    Directories, dot-files and ``__MACOSX`` resource forks are skipped.
    Matching is case-insensitive and keeps archive order.
    """
    wanted = tuple(ext.lower() for ext in extensions)
    try:
        zf = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise ArchiveError("Invalid training archive") from e

    found: list[tuple[str, bytes]] = []
    with zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            path = PurePosixPath(info.filename)
            if _is_hidden(path):
                continue
            if path.suffix.lower() not in wanted:
                continue
            try:
                found.append((info.filename, zf.read(info)))
            except (zipfile.BadZipFile, zlib.error, RuntimeError, NotImplementedError) as e:
                raise ArchiveError(f"Unreadable archive member {info.filename}") from e

    logger.info("Extracted %d images from archive", len(found))
    return found
