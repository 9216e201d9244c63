"""
Media Store

Uploaded images and synthesized audio live under the uploads directory and
are referenced from the database by public URL (``/uploads/...``).
"""

import mimetypes
import random
import re
import time
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from config.constants import DEFAULT_IMAGE_EXTENSION
from utils.logging import get_logger

logger = get_logger(__name__)

_EXTENSION_PATTERN = re.compile(r"^\.[a-z0-9]{1,8}$")


def guess_mime_type(filename: Optional[str], default: str = "image/jpeg") -> str:
    """MIME type from a filename's extension."""
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return default


class MediaStore:
    """Maps between files under the uploads root and their public URLs."""

    def __init__(self, root: Path, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.images_dir = self.root / "images"
        self.audio_dir = self.root / "audio"

    def ensure_dirs(self) -> None:
        for directory in (self.root, self.images_dir, self.audio_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def public_url(self, path: Path) -> str:
        relative = Path(path).resolve().relative_to(self.root.resolve())
        return f"{self.url_prefix}/{relative.as_posix()}"

    def resolve(self, url: Optional[str]) -> Optional[Path]:
        """File behind a public URL, or None if it is not one of ours or is gone."""
        if not url or not url.startswith(self.url_prefix + "/"):
            return None
        relative = url[len(self.url_prefix) + 1:]
        path = (self.root / relative).resolve()
        if self.root.resolve() not in path.parents:
            return None
        return path if path.is_file() else None

    async def save_image(self, data: bytes, filename: Optional[str] = None) -> str:
        """Persist an uploaded image and return its public URL."""
        extension = Path(filename or "").suffix.lower()
        if not _EXTENSION_PATTERN.match(extension):
            extension = DEFAULT_IMAGE_EXTENSION

        self.images_dir.mkdir(parents=True, exist_ok=True)
        name = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{extension}"
        path = self.images_dir / name

        async with aiofiles.open(path, "wb") as f:
            await f.write(data)

        logger.debug(f"Stored upload {name} ({len(data)} bytes)")
        return self.public_url(path)

    async def remove(self, url: Optional[str]) -> bool:
        """Delete the file behind a public URL. Missing files are ignored."""
        path = self.resolve(url)
        if path is None:
            return False
        try:
            await aiofiles.os.remove(path)
            logger.debug(f"Removed {url}")
            return True
        except FileNotFoundError:
            return False
