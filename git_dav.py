import argparse
import logging
import os
import shutil
import sys

from objects_app.errors import GitError
from objects_app.fs import TreeFS
from objects_app.helpers import CHUNK_SIZE
from objects_app.models import Repository

DEFAULT_ADDR = "127.0.0.1:6060"
SETTINGS_MODULE = "django_core.settings"

logger = logging.getLogger("git_dav")


def show_tree(repo, commit_id):
    commit = repo.commit(commit_id)
    print(commit.tree_id)


def list_dir(repo, commit_id, path):
    fs = TreeFS.from_commit(repo, commit_id)
    for entry in fs.listdir(path):
        size = "-" if entry.size is None or entry.is_dir else entry.size
        suffix = "/" if entry.is_dir else ""
        print(f"{entry.mode:06o} {entry.kind} {entry.oid} {size:>8}\t{entry.name}{suffix}")


def cat_file(repo, commit_id, path, out=None):
    if out is None:
        out = sys.stdout.buffer
    fs = TreeFS.from_commit(repo, commit_id)
    with fs.open(path) as f:
        shutil.copyfileobj(f, out, CHUNK_SIZE)
    out.flush()


def serve(repo, commit_id, addr):
    commit = repo.commit(commit_id)
    os.environ["GITDAV_REPOSITORY"] = repo.root
    os.environ["GITDAV_COMMIT"] = commit.oid
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", SETTINGS_MODULE)

    import django
    from django.core.management import call_command

    django.setup()
    print(f"serving requests for {repo.root} at commit {commit}")
    call_command("runserver", addr, use_reloader=False)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Explore a git commit straight from its loose objects")
    parser.add_argument('command', choices=['tree', 'ls', 'cat', 'serve'], help='git_dav commands')
    parser.add_argument('-c', '--commit', required=True, help='Commit to read')
    parser.add_argument('-C', '--repo', default='.', help='Any path inside the repository')
    parser.add_argument('-p', '--path', default='', help='Path inside the commit tree for ls and cat')
    parser.add_argument('--http', default=DEFAULT_ADDR, help=f"HTTP service address for serve (e.g. '{DEFAULT_ADDR}')")
    parser.add_argument('-v', '--verbose', action='store_true', help='Log object reads')

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == 'cat' and not args.path:
        parser.error('cat requires a -p path')

    try:
        repo = Repository.open(args.repo)
        if args.command == 'tree':
            show_tree(repo, args.commit)
        elif args.command == 'ls':
            list_dir(repo, args.commit, args.path)
        elif args.command == 'cat':
            cat_file(repo, args.commit, args.path)
        else:
            serve(repo, args.commit, args.http)
    except GitError as exc:
        logger.debug("command %s failed", args.command, exc_info=True)
        print(f"git_dav: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
