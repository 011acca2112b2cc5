"""Directory-like access to the tree of a single commit.

This is the surface the HTTP views work against: list a directory, stat a
path, open a file. Every call goes back to the object store.
"""

import io
import logging
import posixpath
from dataclasses import dataclass

from .errors import EntryNotFound, ObjectNotFound
from .helpers import CHUNK_SIZE
from .models import MODE_SUBMODULE, MODE_TREE, MODE_TYPE_MASK

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirEntry:
    """One row of a directory listing.

    ``size`` is 0 for directories and submodules, and None for files whose
    object is not stored loose (packed objects cannot be read).
    """

    name: str
    is_dir: bool
    size: int | None
    mode: int
    oid: str

    @property
    def kind(self):
        if self.is_dir:
            return "tree"
        if self.mode & MODE_TYPE_MASK == MODE_SUBMODULE:
            return "commit"
        return "blob"


def split_path(path):
    parts = [part for part in path.split("/") if part and part != "."]
    if ".." in parts:
        raise EntryNotFound(path)
    return parts


class TreeFS:
    def __init__(self, tree):
        self.root = tree
        self.repository = tree.repository

    @classmethod
    def from_commit(cls, repository, commit_id):
        return cls(repository.commit(commit_id).tree())

    def _lookup(self, path):
        """Return the entry at ``path``, or None for the root."""
        parts = split_path(path)
        if not parts:
            return None
        tree = self.root
        for part in parts[:-1]:
            tree = tree.tree(part)
        return tree.entry(parts[-1])

    def tree(self, path=""):
        entry = self._lookup(path)
        if entry is None:
            return self.root
        return self.repository.read_tree(entry.oid, commit=self.root.commit)

    def _dir_entry(self, entry):
        size = 0
        if not entry.is_tree and not entry.is_submodule:
            try:
                _, size = self.repository.object_info(entry.oid)
            except ObjectNotFound:
                logger.debug("%s (%s) is not a loose object", entry.filename, entry.oid)
                size = None
        return DirEntry(
            name=entry.filename,
            is_dir=entry.is_tree,
            size=size,
            mode=entry.mode,
            oid=entry.oid,
        )

    def listdir(self, path=""):
        return [self._dir_entry(entry) for entry in self.tree(path)]

    def stat(self, path=""):
        entry = self._lookup(path)
        if entry is None:
            return DirEntry(name="/", is_dir=True, size=0, mode=MODE_TREE, oid=self.root.oid)
        return self._dir_entry(entry)

    def open(self, path):
        entry = self._lookup(path)
        oid = self.root.oid if entry is None else entry.oid
        return BlobFile(self.repository, oid)

    def walk(self, path=""):
        """Yield ``(dirpath, dirnames, filenames)`` top-down, like os.walk."""
        dirnames, filenames = [], []
        for entry in self.tree(path):
            (dirnames if entry.is_tree else filenames).append(entry.filename)
        yield path, dirnames, filenames
        for name in dirnames:
            yield from self.walk(posixpath.join(path, name))


class BlobFile(io.RawIOBase):
    """A read-only, seekable file over a blob.

    Blob bodies can only be inflated front to back, so seeking forward
    discards bytes and seeking backward reopens the object.
    """

    _blob = None

    def __init__(self, repository, oid):
        super().__init__()
        self.oid = oid
        self._repository = repository
        self._blob = repository.read_blob(oid)
        self.size = self._blob.size
        self._offset = 0
        self._position = 0

    def readable(self):
        return True

    def seekable(self):
        return True

    def tell(self):
        return self._position

    def seek(self, offset, whence=io.SEEK_SET):
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._position + offset
        elif whence == io.SEEK_END:
            target = self.size + offset
        else:
            raise ValueError(f"invalid whence ({whence})")
        if target < 0:
            raise ValueError(f"negative seek position {target}")
        self._position = target
        return target

    def readinto(self, buffer):
        if self._position >= self.size:
            return 0
        self._sync()
        size = self._blob.readinto(buffer)
        self._offset += size
        self._position = self._offset
        return size

    def _sync(self):
        if self._position < self._offset:
            logger.debug("rewinding %s to %d", self.oid, self._position)
            self._blob.close()
            self._blob = self._repository.read_blob(self.oid)
            self._offset = 0
        while self._offset < self._position:
            chunk = self._blob.read(min(CHUNK_SIZE, self._position - self._offset))
            self._offset += len(chunk)

    def close(self):
        if not self.closed and self._blob is not None:
            self._blob.close()
        super().close()
