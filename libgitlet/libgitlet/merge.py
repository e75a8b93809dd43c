"""Three-way merge of two branches."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .checkout import checkout_branch, guard_untracked
from .constants import CONFLICT_END, CONFLICT_SEPARATOR, CONFLICT_START, MERGE_MESSAGE_TEMPLATE
from .exceptions import NoSuchBranchError, SelfMergeError, UncommittedChangesError
from .objects import ContentHash, TrackedPath
from .plumbing import hash_bytes, load_blob
from .state import RepositoryState

if TYPE_CHECKING:
    from .repository import Repository

logger = logging.getLogger(__name__)


class MergeCase(Enum):
    """How a single path changed on each side since the split point."""

    UNCHANGED = 'unchanged'
    SAME_CHANGE = 'same change'
    ADDED_IN_CURRENT = 'added in current'
    MODIFIED_IN_CURRENT = 'modified in current'
    DELETED_IN_CURRENT = 'deleted in current'
    ADDED_IN_GIVEN = 'added in given'
    MODIFIED_IN_GIVEN = 'modified in given'
    DELETED_IN_GIVEN = 'deleted in given'
    CONFLICT = 'conflict'


class MergeAction(Enum):
    KEEP = 'keep'
    TAKE_GIVEN = 'take given'
    REMOVE = 'remove'
    CONFLICT = 'conflict'


CASE_ACTIONS: dict[MergeCase, MergeAction] = {
    MergeCase.UNCHANGED: MergeAction.KEEP,
    MergeCase.SAME_CHANGE: MergeAction.KEEP,
    MergeCase.ADDED_IN_CURRENT: MergeAction.KEEP,
    MergeCase.MODIFIED_IN_CURRENT: MergeAction.KEEP,
    MergeCase.DELETED_IN_CURRENT: MergeAction.KEEP,
    MergeCase.ADDED_IN_GIVEN: MergeAction.TAKE_GIVEN,
    MergeCase.MODIFIED_IN_GIVEN: MergeAction.TAKE_GIVEN,
    MergeCase.DELETED_IN_GIVEN: MergeAction.REMOVE,
    MergeCase.CONFLICT: MergeAction.CONFLICT,
}


class MergeOutcome(Enum):
    UP_TO_DATE = 'up to date'
    FAST_FORWARD = 'fast-forward'
    MERGED = 'merged'


@dataclass
class MergeResult:
    """Represents the output of a merge."""

    outcome: MergeOutcome
    commit_ref: ContentHash
    conflicts: list[TrackedPath] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def classify(split: ContentHash | None, current: ContentHash | None, given: ContentHash | None) -> MergeCase:
    """Decide how a path merges from its blob hash at the split point and on each side.

    None means the path is absent. Exactly one case applies to any combination of inputs."""
    if current == given:
        return MergeCase.UNCHANGED if current == split else MergeCase.SAME_CHANGE

    if given == split:
        if current is None:
            return MergeCase.DELETED_IN_CURRENT
        return MergeCase.ADDED_IN_CURRENT if split is None else MergeCase.MODIFIED_IN_CURRENT

    if current == split:
        if given is None:
            return MergeCase.DELETED_IN_GIVEN
        return MergeCase.ADDED_IN_GIVEN if split is None else MergeCase.MODIFIED_IN_GIVEN

    return MergeCase.CONFLICT


def conflict_content(current: bytes | None, given: bytes | None) -> bytes:
    """Build the content of a conflicted file.

    An absent side contributes nothing. Each side ends with a newline so the markers always start a line."""
    parts = [CONFLICT_START]
    for side, marker in ((current, CONFLICT_SEPARATOR), (given, CONFLICT_END)):
        if side:
            parts.append(side if side.endswith(b'\n') else side + b'\n')
        parts.append(marker)

    return b''.join(parts)


def merge(repo: 'Repository', state: RepositoryState, given: str) -> MergeResult:
    """Merge branch ``given`` into the current branch.

    If the given branch is already part of the current history nothing happens. If the current branch is
    part of the given history, the given branch is checked out instead. Otherwise every path is merged
    according to :func:`classify` and a merge commit with both tips as parents is recorded.

    :param given: The name of the branch to merge in.
    :return: What the merge did, and which paths were left in conflict.
    :raises UncommittedChangesError: If the index is not empty.
    :raises NoSuchBranchError: If ``given`` does not exist.
    :raises SelfMergeError: If ``given`` is the current branch.
    :raises UntrackedFileError: If an untracked working file would be overwritten."""
    if not state.index.is_empty():
        msg = 'You have uncommitted changes.'
        raise UncommittedChangesError(msg)
    if not state.branches.exists(given):
        msg = 'A branch with that name does not exist.'
        raise NoSuchBranchError(msg)
    if given == state.current_branch:
        msg = 'Cannot merge a branch with itself.'
        raise SelfMergeError(msg)

    current_name = state.current_branch
    head_ref = state.head
    given_ref = state.branches.tip(given)
    split_ref = repo.graph.split_point(head_ref, given_ref)

    if split_ref == given_ref:
        logger.info('Branch %s is already merged into %s', given, current_name)
        return MergeResult(MergeOutcome.UP_TO_DATE, head_ref)

    if split_ref == head_ref:
        checkout_branch(repo, state, given)
        logger.info('Fast-forwarded %s to %s', current_name, given_ref)
        return MergeResult(MergeOutcome.FAST_FORWARD, given_ref)

    split_tree = repo.graph.load(split_ref).tree
    current_tree = repo.graph.load(head_ref).tree
    given_tree = repo.graph.load(given_ref).tree

    # Decide every path and the exact bytes to write before touching the working directory
    planned: list[tuple[TrackedPath, MergeAction]] = []
    writes: dict[TrackedPath, bytes] = {}
    for path in sorted(split_tree.keys() | current_tree.keys() | given_tree.keys()):
        split_hash, current_hash, given_hash = split_tree.get(path), current_tree.get(path), given_tree.get(path)
        case = classify(split_hash, current_hash, given_hash)
        action = CASE_ACTIONS[case]
        logger.debug('Merging %s: %s', path, case.value)

        match action:
            case MergeAction.KEEP:
                continue
            case MergeAction.TAKE_GIVEN:
                writes[path] = load_blob(repo.blobs, given_hash).data
            case MergeAction.CONFLICT:
                current_data = load_blob(repo.blobs, current_hash).data if current_hash else None
                given_data = load_blob(repo.blobs, given_hash).data if given_hash else None
                writes[path] = conflict_content(current_data, given_data)
        planned.append((path, action))

    guard_untracked(repo, state, {path: hash_bytes(data) for path, data in writes.items()})

    conflicts: list[TrackedPath] = []
    for path, action in planned:
        if action is MergeAction.REMOVE:
            repo.remove(state, path)
            continue

        repo.worktree.write(path, writes[path])
        repo.add(state, path)
        if action is MergeAction.CONFLICT:
            conflicts.append(path)

    message = MERGE_MESSAGE_TEMPLATE.format(given=given, current=current_name)
    commit_ref = repo.record_commit(state, message, merge_parent=given_ref)
    logger.info('Merged %s into %s as %s with %d conflict(s)', given, current_name, commit_ref, len(conflicts))

    return MergeResult(MergeOutcome.MERGED, commit_ref, conflicts)
