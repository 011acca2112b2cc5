import logging
import mimetypes
import re
from functools import wraps

from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse, StreamingHttpResponse
from django.views.decorators.http import require_safe

from .errors import EntryNotFound, GitError, ObjectNotFound, WrongObjectKind
from .fs import TreeFS
from .helpers import CHUNK_SIZE
from .models import Repository

logger = logging.getLogger(__name__)

RANGE_RE = re.compile(r"^bytes=(\d*)-(\d*)$")
NOT_FOUND_ERRORS = (EntryNotFound, ObjectNotFound, WrongObjectKind)


class RangeNotSatisfiable(ValueError):
    pass


def parse_range(header, size):
    """Return the inclusive ``(start, end)`` of a single byte range.

    Returns None when there is no usable Range header, and raises
    RangeNotSatisfiable when the range lies outside the file.
    """
    match = RANGE_RE.match(header or "")
    if not match:
        return None
    first, last = match.groups()
    if not first and not last:
        return None
    if not first:
        suffix = int(last)
        if not suffix or not size:
            raise RangeNotSatisfiable(header)
        return max(size - suffix, 0), size - 1
    start = int(first)
    end = int(last) if last else size - 1
    if end < start and last:
        return None
    if start >= size:
        raise RangeNotSatisfiable(header)
    return start, min(end, size - 1)


def _repository():
    return Repository.open(settings.GITDAV_REPOSITORY)


def _tree_fs():
    return TreeFS.from_commit(_repository(), settings.GITDAV_COMMIT)


def git_errors(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except NOT_FOUND_ERRORS as exc:
            return JsonResponse({"error": str(exc)}, status=404)
        except GitError as exc:
            logger.exception("cannot serve %s", request.path)
            return JsonResponse({"error": str(exc)}, status=500)
    return wrapper


@require_safe
@git_errors
def commit_overview(request: HttpRequest) -> JsonResponse:
    repo = _repository()
    commit = repo.commit(settings.GITDAV_COMMIT)
    return JsonResponse({
        "repository": repo.root,
        "commit": commit.oid,
        "tree": commit.tree_id,
    })


@require_safe
@git_errors
def tree_view(request: HttpRequest, path: str = "") -> JsonResponse:
    entries = [
        {
            "name": entry.name,
            "type": entry.kind,
            "size": entry.size,
            "mode": format(entry.mode, "06o"),
            "id": entry.oid,
        }
        for entry in _tree_fs().listdir(path)
    ]
    return JsonResponse({"path": path, "entries": entries})


def _read_range(blob, length):
    with blob:
        while length > 0:
            chunk = blob.read(min(CHUNK_SIZE, length))
            if not chunk:
                return
            length -= len(chunk)
            yield chunk


@require_safe
@git_errors
def blob_view(request: HttpRequest, path: str) -> HttpResponse:
    blob = _tree_fs().open(path)
    size = blob.size
    try:
        byte_range = parse_range(request.headers.get("Range"), size)
    except RangeNotSatisfiable:
        blob.close()
        response = HttpResponse(status=416)
        response["Content-Range"] = f"bytes */{size}"
        return response

    start, end = byte_range or (0, size - 1)
    length = end - start + 1
    content_type, _ = mimetypes.guess_type(path)
    content_type = content_type or "application/octet-stream"
    status = 206 if byte_range else 200

    if request.method == "HEAD":
        blob.close()
        response = HttpResponse(content_type=content_type, status=status)
    else:
        blob.seek(start)
        response = StreamingHttpResponse(_read_range(blob, length), content_type=content_type, status=status)
    response["Content-Length"] = str(length)
    response["Accept-Ranges"] = "bytes"
    if byte_range:
        response["Content-Range"] = f"bytes {start}-{end}/{size}"
    logger.debug("%s %s %d-%d/%d", request.method, path, start, end, size)
    return response
