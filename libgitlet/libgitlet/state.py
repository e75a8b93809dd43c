"""The mutable repository state: branch table, current branch and staging index.

The state is an explicit value. It is loaded once per command, handed to every operation that needs
it, and persisted once when the command succeeds."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .constants import ENCODING
from .exceptions import BranchExistsError, CorruptStateError, CurrentBranchError, NoSuchBranchError
from .objects import ContentHash, TrackedPath

logger = logging.getLogger(__name__)


@dataclass
class StagingIndex:
    """Pending changes relative to HEAD.

    A path is never both staged for addition and staged for removal."""

    additions: dict[TrackedPath, ContentHash] = field(default_factory=dict)
    removals: set[TrackedPath] = field(default_factory=set)

    def is_empty(self) -> bool:
        return not self.additions and not self.removals

    def clear(self) -> None:
        self.additions.clear()
        self.removals.clear()

    def stage(self, path: TrackedPath, blob_hash: ContentHash) -> None:
        self.removals.discard(path)
        self.additions[path] = blob_hash

    def unstage(self, path: TrackedPath) -> bool:
        """Drop a pending addition. Return whether there was one."""
        return self.additions.pop(path, None) is not None

    def mark_removed(self, path: TrackedPath) -> None:
        self.additions.pop(path, None)
        self.removals.add(path)

    def unmark_removed(self, path: TrackedPath) -> bool:
        """Cancel a pending removal. Return whether there was one."""
        if path in self.removals:
            self.removals.remove(path)
            return True
        return False


@dataclass
class BranchTable:
    """Branch names mapped to the commits they point at."""

    tips: dict[str, ContentHash] = field(default_factory=dict)

    def names(self) -> list[str]:
        return sorted(self.tips)

    def exists(self, name: str) -> bool:
        return name in self.tips

    def tip(self, name: str) -> ContentHash:
        """Return the commit a branch points at.

        :raises NoSuchBranchError: If the branch does not exist."""
        try:
            return self.tips[name]
        except KeyError as e:
            msg = 'No such branch exists.'
            raise NoSuchBranchError(msg) from e

    def create(self, name: str, commit_hash: ContentHash) -> None:
        """Add a new branch pointing at ``commit_hash``.

        :raises ValueError: If the branch name is empty.
        :raises BranchExistsError: If the branch already exists."""
        if not name:
            msg = 'Branch name is required'
            raise ValueError(msg)
        if name in self.tips:
            msg = 'A branch with that name already exists.'
            raise BranchExistsError(msg)

        self.tips[name] = commit_hash

    def delete(self, name: str, current: str) -> None:
        """Remove a branch pointer. The commits it pointed at are kept.

        :raises NoSuchBranchError: If the branch does not exist.
        :raises CurrentBranchError: If the branch is the current branch."""
        if name not in self.tips:
            msg = 'A branch with that name does not exist.'
            raise NoSuchBranchError(msg)
        if name == current:
            msg = 'Cannot remove the current branch.'
            raise CurrentBranchError(msg)

        del self.tips[name]

    def move(self, name: str, commit_hash: ContentHash) -> None:
        if name not in self.tips:
            msg = 'No such branch exists.'
            raise NoSuchBranchError(msg)

        self.tips[name] = commit_hash


@dataclass
class RepositoryState:
    """Everything about a repository that changes between commands, except the working files."""

    branches: BranchTable
    current_branch: str
    index: StagingIndex = field(default_factory=StagingIndex)

    @property
    def head(self) -> ContentHash:
        """The tip commit of the current branch."""
        return self.branches.tip(self.current_branch)

    def advance(self, commit_hash: ContentHash) -> None:
        """Move the current branch, and with it HEAD, to ``commit_hash``."""
        self.branches.move(self.current_branch, commit_hash)
        logger.debug('Branch %s now at %s', self.current_branch, commit_hash)

    def switch(self, branch: str) -> None:
        """Make ``branch`` the current branch."""
        self.branches.tip(branch)
        self.current_branch = branch

    def to_dict(self) -> dict[str, Any]:
        return {
            'current_branch': self.current_branch,
            'head': self.head,
            'branches': dict(sorted(self.branches.tips.items())),
            'staged_additions': dict(sorted(self.index.additions.items())),
            'staged_removals': sorted(self.index.removals),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> 'RepositoryState':
        """Rebuild the state from :meth:`to_dict` output.

        :raises CorruptStateError: If the payload is malformed or inconsistent."""
        try:
            branches = BranchTable({str(name): ContentHash(tip) for name, tip in payload['branches'].items()})
            index = StagingIndex(
                {TrackedPath(path): ContentHash(blob) for path, blob in payload['staged_additions'].items()},
                {TrackedPath(path) for path in payload['staged_removals']},
            )
            state = cls(branches, str(payload['current_branch']), index)
            head = payload['head']
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            msg = 'Malformed repository state'
            raise CorruptStateError(msg) from e

        if not branches.exists(state.current_branch):
            msg = f'Current branch "{state.current_branch}" is missing from the branch table'
            raise CorruptStateError(msg)
        if head != state.head:
            msg = f'HEAD {head} does not match the tip of branch "{state.current_branch}"'
            raise CorruptStateError(msg)
        if index.removals & index.additions.keys():
            msg = 'A path is staged for both addition and removal'
            raise CorruptStateError(msg)

        return state


def load_state(state_file: Path) -> RepositoryState:
    """Read the persisted repository state.

    :raises CorruptStateError: If the file is missing, unreadable or malformed."""
    try:
        payload = json.loads(state_file.read_text(encoding=ENCODING))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        msg = f'Cannot read repository state from {state_file}'
        raise CorruptStateError(msg) from e

    if not isinstance(payload, dict):
        msg = f'Repository state in {state_file} is not an object'
        raise CorruptStateError(msg)

    return RepositoryState.from_dict(payload)


def save_state(state_file: Path, state: RepositoryState) -> None:
    """Persist the repository state, replacing the previous snapshot atomically."""
    tmp = state_file.with_name(f'.{state_file.name}.tmp')
    tmp.write_text(json.dumps(state.to_dict(), indent=2) + '\n', encoding=ENCODING)
    os.replace(tmp, state_file)
    logger.debug('Saved repository state to %s', state_file)
