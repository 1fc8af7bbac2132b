import logging
import shutil
from pathlib import Path
from typing import Union

from docsim.core.errors import NotFoundError

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """Blob store backed by a directory on the local disk."""

    def __init__(self, base_path: Union[str, Path]):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Blob storage ensured at: {self.base_path}")

    def _path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if self.base_path.resolve() not in path.parents:
            raise ValueError(f"Key escapes storage root: {key}")
        return path

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def upload_bytes(self, key: str, data: bytes) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info(f"Stored {len(data)} bytes at {key}")

    def download_bytes(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError(f"File not found in storage: {key}")
        return path.read_bytes()

    def move_file(self, src_key: str, dst_key: str) -> None:
        src = self._path(src_key)
        if not src.is_file():
            raise NotFoundError(f"File not found in storage: {src_key}")
        dst = self._path(dst_key)
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(src), str(dst))
        logger.info(f"Moved {src_key} → {dst_key}")
