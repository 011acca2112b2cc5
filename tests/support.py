"""Builders for on-disk repositories made of real loose objects."""

import hashlib
import os
import zlib

MODE_BLOB = b"100644"
MODE_TREE = b"40000"


def write_raw(root, oid, data):
    path_dir = os.path.join(root, ".git", "objects", oid[:2])
    os.makedirs(path_dir, exist_ok=True)
    with open(os.path.join(path_dir, oid[2:]), "wb") as f:
        f.write(data)


def hash_object(root, body, obj_type, write=True):
    header = f"{obj_type} {len(body)}\0".encode()
    full_data = header + body
    oid = hashlib.sha1(full_data).hexdigest()
    if write:
        write_raw(root, oid, zlib.compress(full_data))
    return oid


def tree_body(entries):
    """``entries`` is a list of ``(mode, name, hex_id)`` with bytes mode and name."""
    return b"".join(mode + b" " + name + b"\0" + bytes.fromhex(oid) for mode, name, oid in entries)


def commit_body(tree_id, message="initial"):
    return (
        f"tree {tree_id}\n"
        "author Tests <tests@example.com> 1700000000 +0000\n"
        "committer Tests <tests@example.com> 1700000000 +0000\n"
        "\n"
        f"{message}\n"
    ).encode()


def init_repository(root):
    os.makedirs(os.path.join(root, ".git", "objects"), exist_ok=True)
    return root


def make_sample_repository(root):
    """Commit of ``hello.txt`` ("world") and ``docs/readme.md`` plus a packed-only entry."""
    init_repository(root)
    hello = hash_object(root, b"world", "blob")
    readme = hash_object(root, b"# docs\n" * 3, "blob")
    docs = hash_object(root, tree_body([(MODE_BLOB, b"readme.md", readme)]), "tree")
    packed = hash_object(root, b"only in a pack", "blob", write=False)
    tree = hash_object(
        root,
        tree_body([
            (MODE_TREE, b"docs", docs),
            (MODE_BLOB, b"hello.txt", hello),
            (MODE_BLOB, b"packed.bin", packed),
        ]),
        "tree",
    )
    commit = hash_object(root, commit_body(tree), "commit")
    return {
        "commit": commit,
        "tree": tree,
        "hello": hello,
        "readme": readme,
        "docs": docs,
        "packed": packed,
    }
