"""libgitlet: a small local version-control system."""

from .objects import Blob, Commit, ContentHash, TrackedPath, Tree

__all__ = [
    'Blob',
    'Commit',
    'ContentHash',
    'TrackedPath',
    'Tree',
]
