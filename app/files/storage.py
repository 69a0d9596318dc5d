# app/files/storage.py

"""
The platform file tree.

Every user owns a home folder at the virtual path /<uid>/files. Nodes live on
disk below the configured data directory and get a stable integer id from the
file_cache table the first time they are resolved.
"""

import posixpath
import shutil
from pathlib import Path
from typing import List, Optional, Union

from fastapi import Depends
from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.files.exceptions import AlreadyExistsError, NotFoundError, NotPermittedError
from app.files.models import FileCacheEntry
from app.utils.logger import get_logger

logger = get_logger(__name__)

USER_FILES_DIR = "files"

# Longest file name most local file systems accept, in bytes
MAX_NAME_BYTES = 255


def normalize_path(path: str) -> str:
    """Collapse a virtual path to its rooted canonical form."""
    if not path:
        raise NotFoundError(path)
    return posixpath.normpath("/" + path.strip("/"))


def has_control_characters(value: str) -> bool:
    return any(ord(char) < 32 or ord(char) == 127 for char in value)


def _validate_name(name: str, parent_path: str) -> None:
    if (
        not name
        or name in (".", "..")
        or "/" in name
        or "\\" in name
        or has_control_characters(name)
        or len(name.encode("utf-8")) > MAX_NAME_BYTES
    ):
        raise NotPermittedError(posixpath.join(parent_path, name or ""), "invalid name")


class Node:
    """A file or folder of the tree."""

    def __init__(self, root: "RootFolder", entry: FileCacheEntry):
        self._root = root
        self._entry = entry

    @property
    def id(self) -> int:
        return self._entry.id

    @property
    def path(self) -> str:
        return self._entry.path

    @property
    def name(self) -> str:
        return posixpath.basename(self._entry.path)

    @property
    def owner(self) -> str:
        return self._entry.owner

    @property
    def local_path(self) -> Path:
        return self._root.local_path(self.path)

    @property
    def mtime(self) -> int:
        try:
            return int(self.local_path.stat().st_mtime)
        except FileNotFoundError as e:
            raise NotFoundError(self.path) from e

    def get_parent(self) -> "Folder":
        parent = self._root.get(posixpath.dirname(self.path))
        if not isinstance(parent, Folder):
            raise NotFoundError(posixpath.dirname(self.path))
        return parent

    def delete(self) -> None:
        """Remove the node from disk and forget its id."""
        path = self.path
        try:
            if self.local_path.is_dir():
                shutil.rmtree(self.local_path)
            else:
                self.local_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise NotPermittedError(path, e.strerror or str(e)) from e
        self._root.forget(path)
        logger.info("Node deleted", path=path)


class File(Node):

    @property
    def size(self) -> int:
        try:
            return self.local_path.stat().st_size
        except FileNotFoundError as e:
            raise NotFoundError(self.path) from e

    def get_content(self) -> bytes:
        try:
            return self.local_path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(self.path) from e
        except OSError as e:
            raise NotPermittedError(self.path, e.strerror or str(e)) from e


class Folder(Node):

    def get(self, name: str) -> Node:
        _validate_name(name, self.path)
        return self._root.get(posixpath.join(self.path, name))

    def node_exists(self, name: str) -> bool:
        """Exact, case-sensitive check for a direct child."""
        try:
            return any(child.name == name for child in self.local_path.iterdir())
        except FileNotFoundError:
            return False

    def get_by_id(self, file_id: int) -> List[Node]:
        """Nodes with the given id inside this folder's subtree."""
        prefix = self.path.rstrip("/") + "/"
        return [node for node in self._root.get_by_id(file_id) if node.path.startswith(prefix)]

    def new_file(self, name: str, content: bytes) -> File:
        _validate_name(name, self.path)
        path = posixpath.join(self.path, name)
        target = self._root.local_path(path)

        try:
            with open(target, "xb") as f:
                f.write(content)
        except FileExistsError as e:
            raise AlreadyExistsError(path) from e
        except FileNotFoundError as e:
            raise NotFoundError(self.path) from e
        except OSError as e:
            # A partially written file must not be left behind on a full disk
            try:
                target.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning("Could not remove partial file", path=path, error=str(cleanup_error))
            raise NotPermittedError(path, e.strerror or str(e)) from e

        logger.info("File created", path=path, size=len(content))
        return self._root.get(path)

    def new_folder(self, name: str) -> "Folder":
        _validate_name(name, self.path)
        path = posixpath.join(self.path, name)
        try:
            self._root.local_path(path).mkdir()
        except FileExistsError as e:
            raise NotPermittedError(path, "already exists") from e
        except OSError as e:
            raise NotPermittedError(path, e.strerror or str(e)) from e
        return self._root.get(path)


class RootFolder:
    """
    Entry point to the tree: resolve by path, by id, or get a user's home folder.
    """

    def __init__(self, db: Session, data_directory: Union[str, Path]):
        self.db = db
        self.data_directory = Path(data_directory)

    def local_path(self, path: str) -> Path:
        return self.data_directory / normalize_path(path).lstrip("/")

    def get(self, path: str) -> Node:
        path = normalize_path(path)
        if path == "/":
            raise NotFoundError(path)

        local = self.local_path(path)
        if not local.exists():
            raise NotFoundError(path)

        entry = self._register(path, local.is_dir())
        return self._wrap(entry)

    def get_user_folder(self, uid: str) -> Folder:
        if not uid or "/" in uid or uid in (".", ".."):
            raise NotFoundError(f"/{uid}/{USER_FILES_DIR}")

        path = f"/{uid}/{USER_FILES_DIR}"
        local = self.local_path(path)
        try:
            local.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise NotPermittedError(path, e.strerror or str(e)) from e

        folder = self.get(path)
        if not isinstance(folder, Folder):
            raise NotFoundError(path)
        return folder

    def get_by_id(self, file_id: int) -> List[Node]:
        entry = self.db.get(FileCacheEntry, file_id)
        if entry is None:
            return []
        if not self.local_path(entry.path).exists():
            logger.debug("Cached node missing on disk", file_id=file_id, path=entry.path)
            return []
        return [self._wrap(entry)]

    def forget(self, path: str) -> None:
        path = normalize_path(path)
        self.db.execute(
            delete(FileCacheEntry).where(
                or_(FileCacheEntry.path == path, FileCacheEntry.path.startswith(path + "/"))
            )
        )
        self.db.flush()

    def _register(self, path: str, is_folder: bool) -> FileCacheEntry:
        entry: Optional[FileCacheEntry] = self.db.execute(
            select(FileCacheEntry).where(FileCacheEntry.path == path)
        ).scalar_one_or_none()

        if entry is None:
            owner = path.strip("/").split("/")[0]
            entry = FileCacheEntry(path=path, owner=owner, is_folder=is_folder)
            self.db.add(entry)
            self.db.flush()
            logger.debug("Node registered", file_id=entry.id, path=path)
        elif entry.is_folder != is_folder:
            entry.is_folder = is_folder
            self.db.flush()
        return entry

    def _wrap(self, entry: FileCacheEntry) -> Node:
        if entry.is_folder:
            return Folder(self, entry)
        return File(self, entry)


def get_root_folder(db: Session = Depends(get_db)) -> RootFolder:
    """Get the platform file tree"""
    return RootFolder(db, settings.data_directory)
