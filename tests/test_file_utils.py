import pytest

from app.core.exceptions import ValidationError
from utils.file_utils import ImageStorage


@pytest.fixture
def storage(tmp_path):
    return ImageStorage(str(tmp_path / "uploads"), max_file_size=1024, allowed_extensions=[".jpg", ".PNG"])


def test_validate(storage):
    storage.validate("photo.JPG", 10)
    storage.validate("photo.png", 1024)
    with pytest.raises(ValidationError):
        storage.validate("notes.txt", 10)
    with pytest.raises(ValidationError):
        storage.validate(None, 10)
    with pytest.raises(ValidationError):
        storage.validate("photo.jpg", 0)
    with pytest.raises(ValidationError, match="File too large"):
        storage.validate("photo.jpg", 1025)


def test_mime_type(storage):
    assert storage.mime_type("a/b/c.png") == "image/png"
    assert storage.mime_type("c.webp") == "image/webp"


def test_delete_is_best_effort(storage, tmp_path):
    image = tmp_path / "uploads" / "x.jpg"
    image.write_bytes(b"data")

    assert storage.exists(str(image))
    assert storage.delete(str(image)) is True
    assert not image.exists()
    assert storage.delete(str(image)) is False
    assert storage.delete(None) is False
