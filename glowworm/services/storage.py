import logging
import os

from glowworm.utils.filenames import safe_filename

logger = logging.getLogger(__name__)


class MediaStorage:
    """Stores uploaded bytes under ``<root>/<user_id>/<file_id>_<name>``."""

    def __init__(self, root_dir: str):
        self.root_dir = root_dir

    def save(self, user_id: str, file_id: str, filename: str, content: bytes) -> str:
        user_dir = os.path.join(self.root_dir, safe_filename(user_id))
        os.makedirs(user_dir, exist_ok=True)
        file_path = os.path.join(user_dir, f"{file_id}_{safe_filename(filename)}")
        with open(file_path, "wb") as f:
            f.write(content)
        return file_path

    def delete(self, file_path: str) -> bool:
        try:
            os.remove(file_path)
        except FileNotFoundError:
            logger.warning("Stored file already missing: %s", file_path)
            return False
        return True
