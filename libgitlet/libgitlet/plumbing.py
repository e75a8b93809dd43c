"""Low-level object storage: hashing, (de)serialization and the content-addressed store."""

import hashlib
import json
import logging
import os
from collections.abc import Iterator
from pathlib import Path

from .constants import ENCODING, HASH_CHARSET
from .exceptions import AmbiguousObjectError, CorruptObjectError, ObjectNotFoundError, RepositoryError
from .objects import Blob, Commit, ContentHash, TrackedPath

logger = logging.getLogger(__name__)


def hash_bytes(data: bytes) -> ContentHash:
    """Compute the identity of a piece of content.

    :param data: The bytes to hash.
    :return: The hex SHA-1 digest of the bytes."""
    return ContentHash(hashlib.sha1(data).hexdigest())


def hash_file(file: Path) -> ContentHash:
    """Hash the content of a file on disk without storing it."""
    return hash_bytes(file.read_bytes())


def serialize_commit(commit: Commit) -> bytes:
    """Serialize a commit to its canonical form.

    Keys are sorted and separators compact so that equal commits always produce equal bytes,
    and therefore equal hashes."""
    payload = {
        'message': commit.message,
        'timestamp': commit.timestamp,
        'parent': commit.parent,
        'merge_parent': commit.merge_parent,
        'tree': dict(commit.tree),
    }
    return json.dumps(payload, sort_keys=True, separators=(',', ':'), ensure_ascii=False).encode(ENCODING)


def deserialize_commit(data: bytes) -> Commit:
    """Decode a commit previously produced by :func:`serialize_commit`.

    :raises CorruptObjectError: If the bytes are not a valid commit."""
    try:
        payload = json.loads(data.decode(ENCODING))
        parent = payload['parent']
        merge_parent = payload['merge_parent']

        return Commit(
            message=payload['message'],
            timestamp=int(payload['timestamp']),
            parent=ContentHash(parent) if parent else None,
            merge_parent=ContentHash(merge_parent) if merge_parent else None,
            tree={TrackedPath(path): ContentHash(blob) for path, blob in payload['tree'].items()},
        )
    except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
        msg = 'Malformed commit object'
        raise CorruptObjectError(msg) from e


class ObjectStore:
    """A directory of immutable objects, one file per object, named by the hash of its content."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def path_for(self, object_hash: str) -> Path:
        return self.root / object_hash

    def put(self, data: bytes) -> ContentHash:
        """Store content under its hash.

        Storing content that is already present is a no-op.

        :param data: The content to store.
        :return: The hash of the content."""
        object_hash = hash_bytes(data)
        target = self.path_for(object_hash)
        if target.exists():
            return object_hash

        # Write to a sibling first so a crash never leaves a truncated object under a valid name
        tmp = target.with_name(f'.{object_hash}.tmp')
        try:
            tmp.write_bytes(data)
            os.replace(tmp, target)
        except OSError as e:
            msg = f'Error writing object {object_hash}'
            raise RepositoryError(msg) from e

        logger.debug('Stored object %s in %s', object_hash, self.root.name)
        return object_hash

    def get(self, object_hash: str) -> bytes:
        """Read stored content.

        :param object_hash: The full hash of the object.
        :return: The stored bytes.
        :raises ObjectNotFoundError: If no object with that hash exists."""
        try:
            return self.path_for(object_hash).read_bytes()
        except FileNotFoundError as e:
            msg = f'Object {object_hash} not found'
            raise ObjectNotFoundError(msg) from e

    def contains(self, object_hash: str) -> bool:
        return self.path_for(object_hash).is_file()

    def __contains__(self, object_hash: object) -> bool:
        return isinstance(object_hash, str) and self.contains(object_hash)

    def __iter__(self) -> Iterator[ContentHash]:
        if not self.root.is_dir():
            return
        for name in sorted(p.name for p in self.root.iterdir()):
            if ContentHash.is_valid(name):
                yield ContentHash(name)

    def resolve_prefix(self, prefix: str) -> ContentHash:
        """Expand an abbreviated hash to the full hash of a stored object.

        A complete hash that is stored resolves to itself even if it is a prefix of nothing else.

        :param prefix: The leading characters of a hash.
        :return: The full hash of the single matching object.
        :raises ObjectNotFoundError: If no stored object matches.
        :raises AmbiguousObjectError: If more than one stored object matches."""
        prefix = prefix.lower()
        if not prefix or not all(c in HASH_CHARSET for c in prefix):
            msg = f'No object matches {prefix!r}'
            raise ObjectNotFoundError(msg)

        if ContentHash.is_valid(prefix) and self.contains(prefix):
            return ContentHash(prefix)

        matches = [h for h in self if h.startswith(prefix)]
        if not matches:
            msg = f'No object matches {prefix!r}'
            raise ObjectNotFoundError(msg)
        if len(matches) > 1:
            msg = f'Ambiguous object id {prefix!r} matches {len(matches)} objects'
            raise AmbiguousObjectError(msg)

        return matches[0]


def save_blob(store: ObjectStore, data: bytes) -> Blob:
    return Blob(store.put(data), data)


def load_blob(store: ObjectStore, blob_hash: str) -> Blob:
    return Blob(ContentHash(blob_hash), store.get(blob_hash))


def save_commit(store: ObjectStore, commit: Commit) -> ContentHash:
    """Persist a commit and return its identity."""
    return store.put(serialize_commit(commit))


def load_commit(store: ObjectStore, commit_hash: str) -> Commit:
    """Load a commit by its full hash.

    :raises ObjectNotFoundError: If the commit does not exist.
    :raises CorruptObjectError: If the stored commit cannot be decoded."""
    return deserialize_commit(store.get(commit_hash))
