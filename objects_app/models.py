import io
import logging
import os
import stat
from dataclasses import dataclass

from .errors import EntryNotFound, GitIOError, RepositoryNotFound, WrongObjectKind
from .helpers import (
    CHUNK_SIZE,
    ObjectKind,
    normalize_id,
    open_object,
    parse_commit,
    parse_tree,
)

logger = logging.getLogger(__name__)

GIT_DIR = ".git"

MODE_TYPE_MASK = 0o170000
MODE_TREE = 0o040000
MODE_SYMLINK = 0o120000
MODE_SUBMODULE = 0o160000


class Repository:
    """A git repository on disk, addressed by its working directory root."""

    def __init__(self, root):
        self.root = os.path.abspath(root)

    @classmethod
    def open(cls, path):
        """Return the repository containing ``path``.

        Walks up the directory hierarchy until a directory holding a ``.git``
        directory is found, or the filesystem root is reached.
        """
        start = os.path.abspath(path)
        current = start
        while True:
            git_dir = os.path.join(current, GIT_DIR)
            try:
                st = os.stat(git_dir)
            except (FileNotFoundError, NotADirectoryError):
                pass
            except OSError as exc:
                raise GitIOError(None, exc, path=git_dir) from exc
            else:
                if stat.S_ISDIR(st.st_mode):
                    logger.debug("found repository %s for %s", current, start)
                    return cls(current)
            parent = os.path.dirname(current)
            if parent == current:
                raise RepositoryNotFound(start)
            current = parent

    def __repr__(self):
        return f"Repository({self.root!r})"

    def open_object(self, oid, expected=None):
        """Open an object body, checking its kind against ``expected``."""
        kind, body = open_object(self.root, oid)
        if expected is not None and kind is not expected:
            body.close()
            raise WrongObjectKind(body.oid, expected, kind)
        return body

    def object_info(self, oid):
        """Return ``(kind, size)`` from the object header without reading the body."""
        kind, body = open_object(self.root, oid)
        with body:
            return kind, body.length

    def commit(self, oid):
        oid = normalize_id(oid)
        with io.BufferedReader(self.open_object(oid, ObjectKind.COMMIT)) as body:
            tree_id = parse_commit(body, oid)
        return Commit(self, oid, tree_id)

    def read_tree(self, oid, commit=None):
        oid = normalize_id(oid)
        with self.open_object(oid, ObjectKind.TREE) as body:
            entries = tuple(Entry(name, mode, child) for mode, name, child in parse_tree(body, oid))
        logger.debug("parsed tree %s with %d entries", oid, len(entries))
        return Tree(self, oid, entries, commit)

    def read_blob(self, oid):
        oid = normalize_id(oid)
        return Blob(oid, self.open_object(oid, ObjectKind.BLOB))


class Commit:
    def __init__(self, repository, oid, tree_id):
        self.repository = repository
        self.oid = oid
        self.tree_id = tree_id

    def __str__(self):
        return self.oid

    def __repr__(self):
        return f"<Commit {self.oid} tree={self.tree_id}>"

    def tree(self):
        """Read the root tree of this commit. Parsed again on every call."""
        return self.repository.read_tree(self.tree_id, commit=self)


@dataclass(frozen=True)
class Entry:
    name: bytes
    mode: int
    oid: str

    @property
    def filename(self):
        return self.name.decode("utf-8", "surrogateescape")

    @property
    def is_tree(self):
        return self.mode & MODE_TYPE_MASK == MODE_TREE

    @property
    def is_blob(self):
        return self.mode & MODE_TYPE_MASK == 0o100000

    @property
    def is_executable(self):
        return self.is_blob and bool(self.mode & 0o111)

    @property
    def is_symlink(self):
        return self.mode & MODE_TYPE_MASK == MODE_SYMLINK

    @property
    def is_submodule(self):
        return self.mode & MODE_TYPE_MASK == MODE_SUBMODULE

    @property
    def mode_text(self):
        return format(self.mode, "o")


def _entry_name(name):
    if isinstance(name, str):
        return name.encode("utf-8", "surrogateescape")
    return name


class Tree:
    """A parsed tree object. Entries keep their on-disk order."""

    def __init__(self, repository, oid, entries, commit=None):
        self.repository = repository
        self.oid = oid
        self.commit = commit
        self._entries = tuple(entries)

    @property
    def entries(self):
        return self._entries

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        return f"<Tree {self.oid} ({len(self._entries)} entries)>"

    def entry(self, name):
        wanted = _entry_name(name)
        for entry in self._entries:
            if entry.name == wanted:
                return entry
        raise EntryNotFound(name, self.oid)

    def blob(self, name):
        """Open the named child blob. The caller closes the returned Blob."""
        return self.repository.read_blob(self.entry(name).oid)

    def tree(self, name):
        return self.repository.read_tree(self.entry(name).oid, commit=self.commit)


class Blob:
    """A blob body exposed as a readable stream of exactly ``size`` bytes."""

    def __init__(self, oid, body):
        self.oid = oid
        self.size = body.length
        self._body = body

    def __repr__(self):
        return f"<Blob {self.oid} ({self.size} bytes)>"

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def closed(self):
        return self._body.closed

    def read(self, size=-1):
        return self._body.read(size)

    def readinto(self, buffer):
        return self._body.readinto(buffer)

    def iter_chunks(self, chunk_size=CHUNK_SIZE):
        while True:
            chunk = self._body.read(chunk_size)
            if not chunk:
                return
            yield chunk

    def close(self):
        self._body.close()
