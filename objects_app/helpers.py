import contextlib
import enum
import io
import logging
import os
import zlib

from .errors import (
    CorruptObject,
    GitIOError,
    InvalidObjectId,
    MalformedHeader,
    MalformedTreeEntry,
    ObjectNotFound,
)

logger = logging.getLogger(__name__)

OBJECTS_DIR = os.path.join(".git", "objects")
CHUNK_SIZE = 64 * 1024
MAX_HEADER_LENGTH = 64
RAW_ID_LENGTH = 20
HEX_DIGITS = frozenset("0123456789abcdef")
OCTAL_DIGITS = frozenset(b"01234567")


class ObjectKind(str, enum.Enum):
    BLOB = "blob"
    TREE = "tree"
    COMMIT = "commit"

    def __str__(self):
        return self.value


def normalize_id(oid):
    """Return ``oid`` as 40 lowercase hex characters or raise InvalidObjectId."""
    if not isinstance(oid, str):
        raise InvalidObjectId(oid)
    lowered = oid.lower()
    if len(lowered) != 40 or not set(lowered) <= HEX_DIGITS:
        raise InvalidObjectId(oid)
    return lowered


def object_path(root, oid):
    oid = normalize_id(oid)
    return os.path.join(root, OBJECTS_DIR, oid[:2], oid[2:])


def open_raw(path, oid):
    try:
        return open(path, "rb")
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise ObjectNotFound(oid, path) from exc
    except OSError as exc:
        raise GitIOError(oid, exc) from exc


class InflateStream(io.RawIOBase):
    """Incrementally inflates a zlib-compressed loose object file.

    Output is produced at most ``chunk_size`` bytes at a time, so large blobs
    never have to be held in memory. Closing the stream closes ``raw``.
    """

    def __init__(self, raw, oid, chunk_size=CHUNK_SIZE):
        super().__init__()
        self.oid = oid
        self._raw = raw
        self._chunk_size = chunk_size
        self._inflater = zlib.decompressobj()
        self._pending = b""
        self._offset = 0
        self._finished = False

    def readable(self):
        return True

    def readinto(self, buffer):
        if not len(buffer):
            return 0
        while self._offset >= len(self._pending):
            if self._finished:
                return 0
            self._inflate_more()
        chunk = memoryview(self._pending)[self._offset:self._offset + len(buffer)]
        size = len(chunk)
        buffer[:size] = chunk
        self._offset += size
        return size

    def _inflate_more(self):
        data = self._inflater.unconsumed_tail
        if not data:
            try:
                data = self._raw.read(self._chunk_size)
            except OSError as exc:
                raise GitIOError(self.oid, exc) from exc
        try:
            output = self._inflater.decompress(data, self._chunk_size)
        except zlib.error as exc:
            raise CorruptObject(self.oid, f"invalid zlib data ({exc})") from exc
        if self._inflater.eof:
            self._finished = True
        elif not data and not output:
            raise CorruptObject(self.oid, "truncated zlib stream")
        self._pending = output
        self._offset = 0

    def close(self):
        if not self.closed:
            self._raw.close()
        super().close()


def parse_header(data, oid):
    kind, sep, length = data.partition(b" ")
    if not sep or not length.isdigit():
        raise MalformedHeader(oid, data)
    try:
        kind = ObjectKind(kind.decode("ascii"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedHeader(oid, data) from exc
    return kind, int(length)


def read_header(stream, oid):
    """Consume ``"<kind> <length>\\0"`` from ``stream``.

    Reads one byte at a time so the stream is left exactly on the first body
    byte.
    """
    header = bytearray()
    while True:
        byte = stream.read(1)
        if not byte:
            raise MalformedHeader(oid, bytes(header))
        if byte == b"\0":
            break
        header += byte
        if len(header) > MAX_HEADER_LENGTH:
            raise MalformedHeader(oid, bytes(header))
    return parse_header(bytes(header), oid)


class BodyReader(io.RawIOBase):
    """Exposes exactly the declared ``length`` bytes of an object body.

    Running out of inflated data early, or finding more data once ``length``
    bytes were read, raises CorruptObject.
    """

    def __init__(self, stream, oid, length):
        super().__init__()
        self.oid = oid
        self.length = length
        self._stream = stream
        self._remaining = length
        self._checked_end = False

    @property
    def remaining(self):
        return self._remaining

    def readable(self):
        return True

    def readinto(self, buffer):
        if not self._remaining:
            self._check_end()
            return 0
        window = memoryview(buffer)[:self._remaining]
        if not len(window):
            return 0
        size = self._stream.readinto(window)
        if not size:
            read = self.length - self._remaining
            raise CorruptObject(self.oid, f"body truncated after {read} of {self.length} bytes")
        self._remaining -= size
        if not self._remaining:
            self._check_end()
        return size

    def _check_end(self):
        if self._checked_end:
            return
        self._checked_end = True
        if self._stream.read(1):
            raise CorruptObject(self.oid, f"trailing data after {self.length} bytes")

    def close(self):
        if not self.closed:
            self._stream.close()
        super().close()


def open_object(root, oid):
    """Open the loose object ``oid`` under repository ``root``.

    Returns ``(kind, body)``; ``body`` is a BodyReader the caller must close.
    The object file is closed before returning if the header cannot be read.
    """
    oid = normalize_id(oid)
    path = object_path(root, oid)
    with contextlib.ExitStack() as stack:
        stream = stack.enter_context(InflateStream(open_raw(path, oid), oid))
        kind, length = read_header(stream, oid)
        stack.pop_all()
    logger.debug("opened %s %s (%d bytes)", kind, oid, length)
    return kind, BodyReader(stream, oid, length)


class ScanState(enum.Enum):
    SEEKING_DELIMITER = "seeking-delimiter"
    AWAITING_SUFFIX = "awaiting-suffix-bytes"
    DONE = "done"


class TreeEntryScanner:
    """Splits a tree body into ``<mode> <name>\\0<20 byte id>`` records.

    Input may arrive in arbitrary chunks. A record is complete once its NUL
    delimiter has been seen and 20 more bytes are buffered.
    """

    def __init__(self, oid=None):
        self.oid = oid
        self.state = ScanState.SEEKING_DELIMITER
        self._buffer = bytearray()
        self._search_from = 0
        self._record_length = 0

    def feed(self, data):
        """Buffer ``data`` and return every record it completes."""
        if self.state is ScanState.DONE:
            raise ValueError("scanner already closed")
        self._buffer += data
        records = []
        while True:
            if self.state is ScanState.SEEKING_DELIMITER:
                nul = self._buffer.find(b"\0", self._search_from)
                if nul < 0:
                    self._search_from = len(self._buffer)
                    break
                self._record_length = nul + 1 + RAW_ID_LENGTH
                self.state = ScanState.AWAITING_SUFFIX
            if len(self._buffer) < self._record_length:
                break
            records.append(bytes(self._buffer[:self._record_length]))
            del self._buffer[:self._record_length]
            self._search_from = 0
            self.state = ScanState.SEEKING_DELIMITER
        return records

    def close(self):
        leftover = bytes(self._buffer)
        self._buffer.clear()
        self.state = ScanState.DONE
        if leftover:
            raise MalformedTreeEntry(self.oid, leftover)


def parse_tree_record(record, oid=None):
    """Return ``(mode, name, hex_id)`` for one complete tree record."""
    head, raw_id = record[:-RAW_ID_LENGTH - 1], record[-RAW_ID_LENGTH:]
    mode, sep, name = head.partition(b" ")
    if not sep or not mode or not name or not set(mode) <= OCTAL_DIGITS:
        raise MalformedTreeEntry(oid, head)
    return int(mode, 8), name, raw_id.hex()


def parse_tree(body, oid=None, chunk_size=CHUNK_SIZE):
    scanner = TreeEntryScanner(oid)
    while True:
        chunk = body.read(chunk_size)
        if not chunk:
            break
        for record in scanner.feed(chunk):
            yield parse_tree_record(record, oid)
    scanner.close()


def parse_commit(lines, oid=None):
    """Return the root tree id of a commit body given as lines of bytes.

    Only the header block before the first blank line is searched; lines
    without a field separator are skipped.
    """
    tree = None
    in_headers = True
    for line in lines:
        line = line.rstrip(b"\r\n")
        if not line:
            in_headers = False
            continue
        field, sep, value = line.partition(b" ")
        if not sep or not in_headers:
            continue
        if field == b"tree" and tree is None:
            tree = value.strip().decode("ascii", "replace")
    if tree is None:
        raise CorruptObject(oid, "commit has no tree")
    try:
        return normalize_id(tree)
    except InvalidObjectId as exc:
        raise CorruptObject(oid, f"bad tree id {tree!r}") from exc
