"""Immutable repository objects and the typed keys that identify them."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from types import MappingProxyType

from .constants import HASH_CHARSET, HASH_LENGTH, INITIAL_COMMIT_MESSAGE, INITIAL_COMMIT_TIMESTAMP


class ContentHash(str):
    """A full hex digest identifying a stored object."""

    __slots__ = ()

    @staticmethod
    def is_valid(value: str) -> bool:
        return len(value) == HASH_LENGTH and all(c in HASH_CHARSET for c in value)


class TrackedPath(str):
    """The name of a plain file directly under the working directory.

    Only top-level files are tracked, so a path with a directory component is rejected."""

    __slots__ = ()

    def __new__(cls, value: 'str | PurePosixPath') -> 'TrackedPath':
        normalized = PurePosixPath(str(value).replace('\\', '/')).as_posix()
        if normalized in ('', '.', '..') or '/' in normalized:
            msg = f'Invalid working directory path: {value!r}'
            raise ValueError(msg)

        return super().__new__(cls, normalized)


Tree = Mapping[TrackedPath, ContentHash]


@dataclass(frozen=True)
class Blob:
    """Stored file content together with its hash."""

    hash: ContentHash
    data: bytes


@dataclass(frozen=True)
class Commit:
    """A complete snapshot of the tracked files.

    The tree maps every tracked path to the hash of its blob, so a commit never depends on its parent's
    tree to be read. ``merge_parent`` is only set on merge commits."""

    message: str
    timestamp: int
    parent: ContentHash | None = None
    merge_parent: ContentHash | None = None
    tree: Tree = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze the tree so a hashed commit cannot drift from its identity
        object.__setattr__(self, 'tree', MappingProxyType(dict(self.tree)))

    @classmethod
    def initial(cls) -> 'Commit':
        return cls(INITIAL_COMMIT_MESSAGE, INITIAL_COMMIT_TIMESTAMP)

    @property
    def is_merge(self) -> bool:
        return self.merge_parent is not None

    def parents(self) -> list[ContentHash]:
        return [p for p in (self.parent, self.merge_parent) if p is not None]
