class GitError(Exception):
    """Base class for everything that can go wrong reading a repository."""


class RepositoryNotFound(GitError):
    def __init__(self, path):
        super().__init__(f"could not locate git repository for path {path!r}")
        self.path = path


class InvalidObjectId(GitError, ValueError):
    def __init__(self, oid):
        super().__init__(f"invalid object id {oid!r}")
        self.oid = oid


class ObjectNotFound(GitError):
    def __init__(self, oid, path=None):
        super().__init__(f"object {oid} not found")
        self.oid = oid
        self.path = path


class GitIOError(GitError):
    def __init__(self, oid, reason, path=None):
        target = f"object {oid}" if oid else path
        super().__init__(f"cannot read {target}: {reason}")
        self.oid = oid
        self.path = path


class CorruptObject(GitError):
    def __init__(self, oid, reason):
        super().__init__(f"corrupt object {oid}: {reason}")
        self.oid = oid
        self.reason = reason


class MalformedHeader(GitError):
    what = "header"

    def __init__(self, oid, data):
        super().__init__(f"malformed {self.what} in object {oid}: {data!r}")
        self.oid = oid
        self.data = data


class MalformedTreeEntry(MalformedHeader):
    what = "tree entry"


class WrongObjectKind(GitError):
    def __init__(self, oid, expected, found):
        super().__init__(f"object {oid}: expected {expected}, got {found}")
        self.oid = oid
        self.expected = expected
        self.found = found


class EntryNotFound(GitError):
    def __init__(self, name, tree_id=None):
        super().__init__(f"entry {name!r} not found in tree {tree_id}")
        self.name = name
        self.tree_id = tree_id
