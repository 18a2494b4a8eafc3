import os

from glowworm.services.storage import MediaStorage
from glowworm.utils.filenames import safe_filename


def test_safe_filename():
    assert safe_filename("my photo (1).jpg") == "my_photo__1_.jpg"
    assert safe_filename("../../etc/passwd") == "_.._etc_passwd"
    assert safe_filename(".hidden") == "hidden"
    assert safe_filename("") == "upload.bin"


def test_save_and_delete(tmp_path):
    storage = MediaStorage(str(tmp_path))

    path = storage.save("user-1", "f-1", "holiday pic.png", b"png-bytes")

    assert path == os.path.join(str(tmp_path), "user-1", "f-1_holiday_pic.png")
    with open(path, "rb") as f:
        assert f.read() == b"png-bytes"
    assert storage.delete(path) is True
    assert not os.path.exists(path)


def test_delete_missing_file(tmp_path):
    storage = MediaStorage(str(tmp_path))
    assert storage.delete(os.path.join(str(tmp_path), "nothing.bin")) is False
