import io
import zipfile

import pytest

from stylizer.archive import ArchiveError, extract_images, pack_training_images


def test_pack_names_images_in_order():
    data = pack_training_images([b"one", b"two", b"three"])

    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert zf.namelist() == [
            "training_images/image_1.jpg",
            "training_images/image_2.jpg",
            "training_images/image_3.jpg",
        ]
        assert zf.read("training_images/image_2.jpg") == b"two"


def test_pack_accepts_generators():
    data = pack_training_images(p for p in [b"a"])
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert zf.namelist() == ["training_images/image_1.jpg"]


def test_extract_filters_by_extension_case_insensitively():
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("photos/", b"")
        zf.writestr("photos/a.JPG", b"a")
        zf.writestr("photos/b.png", b"b")
        zf.writestr("photos/notes.txt", b"ignore me")
        zf.writestr("photos/.hidden.jpg", b"hidden")
        zf.writestr("__MACOSX/photos/._a.JPG", b"fork")

    found = extract_images(buf.getvalue())

    assert found == [("photos/a.JPG", b"a"), ("photos/b.png", b"b")]


def test_extract_with_custom_extensions():
    data = pack_training_images([b"x"])
    assert extract_images(data, extensions=(".png",)) == []


def test_extract_rejects_non_zip():
    with pytest.raises(ArchiveError):
        extract_images(b"not a zip")


def _corrupt_archive():
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_STORED) as zf:
        zf.writestr("training_images/image_1.jpg", b"A" * 64)
    return buf.getvalue().replace(b"A" * 64, b"B" * 64)


def test_extract_rejects_corrupt_member():
    with pytest.raises(ArchiveError, match="image_1.jpg"):
        extract_images(_corrupt_archive())
