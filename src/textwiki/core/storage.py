"""Storage abstraction for wiki pages."""

import asyncio
import logging
import os
import re
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

from textwiki.core.models import Page

logger = logging.getLogger(__name__)

TITLE_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def is_valid_title(title: str) -> bool:
    """Return True if the title is safe to use as a filename stem."""
    return TITLE_PATTERN.fullmatch(title) is not None


class StorageErrorKind(str, Enum):
    """Category of a storage failure."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    IO_ERROR = "io_error"
    INVALID_TITLE = "invalid_title"


class StorageError(Exception):
    """Base error for page storage operations."""

    kind = StorageErrorKind.IO_ERROR

    def __init__(self, title: str, message: str | None = None):
        self.title = title
        super().__init__(message or f"{self.kind.value}: {title!r}")


class PageNotFoundError(StorageError):
    kind = StorageErrorKind.NOT_FOUND


class PagePermissionError(StorageError):
    kind = StorageErrorKind.PERMISSION_DENIED


class PageIOError(StorageError):
    kind = StorageErrorKind.IO_ERROR


class InvalidTitleError(StorageError):
    kind = StorageErrorKind.INVALID_TITLE


def _wrap_os_error(title: str, exc: OSError) -> StorageError:
    """Map an OSError onto the matching StorageError subclass."""
    if isinstance(exc, FileNotFoundError):
        return PageNotFoundError(title)
    if isinstance(exc, PermissionError):
        return PagePermissionError(title, str(exc))
    return PageIOError(title, str(exc))


class Storage(ABC):
    """Abstract base class for page storage."""

    @abstractmethod
    async def save(self, page: Page) -> None:
        """Persist a page, creating or overwriting it."""
        ...

    @abstractmethod
    async def load(self, title: str) -> Page:
        """Load a page by title. Raises StorageError on failure."""
        ...


class FileStorage(Storage):
    """File-based storage implementation.

    Each page lives in its own file, ``<title>.txt``, directly under
    ``base_path``. The file holds the raw body bytes and nothing else.
    New files are created readable and writable by the owner only.
    """

    FILE_MODE = 0o600

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _title_to_filename(self, title: str) -> str:
        """Convert page title to filename."""
        return title + ".txt"

    def _get_path(self, title: str) -> Path:
        """Get full path for a page, rejecting unsafe titles."""
        if not is_valid_title(title):
            raise InvalidTitleError(title)
        return self.base_path / self._title_to_filename(title)

    def _write_file(self, path: Path, body: bytes) -> None:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, self.FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(body)

    async def save(self, page: Page) -> None:
        """Write the page body, truncating any previous content."""
        path = self._get_path(page.title)
        try:
            await asyncio.to_thread(self._write_file, path, page.body)
        except OSError as exc:
            logger.warning("Failed to save page %r: %s", page.title, exc)
            raise _wrap_os_error(page.title, exc) from exc
        logger.debug("Saved page %r (%d bytes)", page.title, len(page.body))

    async def load(self, title: str) -> Page:
        """Read the whole page file into a new Page."""
        path = self._get_path(title)
        try:
            body = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            logger.debug("Failed to load page %r: %s", title, exc)
            raise _wrap_os_error(title, exc) from exc
        return Page(title=title, body=body)
