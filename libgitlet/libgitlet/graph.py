"""Traversal of the commit graph stored in the object store."""

import logging
from collections import deque
from collections.abc import Generator
from dataclasses import dataclass

from .exceptions import (AmbiguousObjectError, NoCommonAncestorError, NoMatchingCommitError, NoSuchCommitError,
                         ObjectNotFoundError)
from .objects import Commit, ContentHash
from .plumbing import ObjectStore, load_commit

logger = logging.getLogger(__name__)


@dataclass
class LogEntry:
    """A class representing a log entry for a branch or commit history."""

    commit_ref: ContentHash
    commit: Commit


class CommitGraph:
    """Read-only view of the commits in a store and the parent edges between them."""

    def __init__(self, commits: ObjectStore) -> None:
        self.commits = commits

    def load(self, commit_hash: str) -> Commit:
        return load_commit(self.commits, commit_hash)

    def resolve(self, commit_id: str) -> tuple[ContentHash, Commit]:
        """Dereference a possibly abbreviated commit id.

        :param commit_id: A full or abbreviated commit hash.
        :return: The full hash and the commit it names.
        :raises NoSuchCommitError: If no commit matches.
        :raises AmbiguousObjectError: If the abbreviation matches several commits."""
        try:
            commit_hash = self.commits.resolve_prefix(commit_id)
        except ObjectNotFoundError as e:
            msg = 'No commit with that id exists.'
            raise NoSuchCommitError(msg) from e
        except AmbiguousObjectError as e:
            msg = f'Commit id {commit_id} is ambiguous.'
            raise AmbiguousObjectError(msg) from e

        return commit_hash, self.load(commit_hash)

    def _walk(self, tip: ContentHash) -> Generator[ContentHash, None, None]:
        """Breadth-first over parent and merge-parent edges, nearest commits first, each commit once."""
        seen: set[ContentHash] = {tip}
        queue = deque([tip])

        while queue:
            current = queue.popleft()
            yield current

            for parent in self.load(current).parents():
                if parent not in seen:
                    seen.add(parent)
                    queue.append(parent)

    def ancestors_of(self, tip: ContentHash) -> set[ContentHash]:
        """Every commit reachable from ``tip``, including ``tip`` itself.

        Both the parent and the merge parent of each commit are followed all the way to the root."""
        return set(self._walk(tip))

    def split_point(self, tip_a: ContentHash, tip_b: ContentHash) -> ContentHash:
        """Find the merge base of two commits.

        Common ancestors that are themselves ancestors of another common ancestor are discarded. Of the
        remaining ones, the first met walking breadth-first from ``tip_a`` wins. On a history without merges
        this is simply the first commit on ``tip_a``'s parent chain that ``tip_b`` can reach.

        :raises NoCommonAncestorError: If the two histories never meet."""
        ancestors_b = self.ancestors_of(tip_b)
        common = [commit_hash for commit_hash in self._walk(tip_a) if commit_hash in ancestors_b]
        if not common:
            msg = f'Commits {tip_a} and {tip_b} have no common ancestor.'
            raise NoCommonAncestorError(msg)

        dominated: set[ContentHash] = set()
        for commit_hash in common:
            if commit_hash in dominated:
                continue
            for parent in self.load(commit_hash).parents():
                dominated |= self.ancestors_of(parent)

        split = next(commit_hash for commit_hash in common if commit_hash not in dominated)
        logger.debug('Split point of %s and %s is %s', tip_a, tip_b, split)
        return split

    def history(self, tip: ContentHash) -> Generator[LogEntry, None, None]:
        """Follow first parents from ``tip`` back to the root commit."""
        current: ContentHash | None = tip
        while current:
            commit = self.load(current)
            yield LogEntry(current, commit)
            current = commit.parent

    def all_commits(self) -> Generator[LogEntry, None, None]:
        """Every commit ever stored, whether or not a branch still reaches it."""
        for commit_hash in self.commits:
            yield LogEntry(commit_hash, self.load(commit_hash))

    def find(self, message: str) -> list[ContentHash]:
        """Return the ids of all commits whose message is exactly ``message``.

        :raises NoMatchingCommitError: If there are none."""
        matches = [entry.commit_ref for entry in self.all_commits() if entry.commit.message == message]
        if not matches:
            msg = 'Found no commit with that message.'
            raise NoMatchingCommitError(msg)

        return matches
