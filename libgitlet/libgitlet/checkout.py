"""Synchronizing the working directory with a commit: checkout and reset."""

import logging
from typing import TYPE_CHECKING

from .exceptions import FileNotInCommitError, NoSuchBranchError, SameBranchError, UntrackedFileError
from .objects import Commit, ContentHash, TrackedPath, Tree
from .plumbing import load_blob
from .state import RepositoryState

if TYPE_CHECKING:
    from .repository import Repository

logger = logging.getLogger(__name__)


def untracked_conflicts(repo: 'Repository', state: RepositoryState, target: Tree) -> list[TrackedPath]:
    """Find working files that writing ``target`` would silently overwrite.

    A file is at risk when HEAD does not track it and ``target`` records a different version of it.

    :return: The paths at risk, sorted."""
    head_tree = repo.head_commit(state).tree
    conflicts = []

    for path in repo.worktree.files():
        if path in head_tree or path not in target:
            continue
        if repo.worktree.hash(path) != target[path]:
            conflicts.append(path)

    return conflicts


def guard_untracked(repo: 'Repository', state: RepositoryState, target: Tree) -> None:
    """Refuse to continue if writing ``target`` would lose untracked work.

    :raises UntrackedFileError: If any untracked working file would be overwritten."""
    conflicts = untracked_conflicts(repo, state, target)
    if conflicts:
        logger.debug('Untracked files in the way: %s', ', '.join(conflicts))
        msg = 'There is an untracked file in the way; delete it, or add and commit it first.'
        raise UntrackedFileError(msg, list(conflicts))


def write_blob(repo: 'Repository', path: TrackedPath, blob_hash: ContentHash) -> None:
    repo.worktree.write(path, load_blob(repo.blobs, blob_hash).data)


def write_tree(repo: 'Repository', tree: Tree) -> None:
    for path, blob_hash in sorted(tree.items()):
        write_blob(repo, path, blob_hash)


def checkout_path(repo: 'Repository', state: RepositoryState, path: str, commit_id: str | None = None) -> None:
    """Restore one file from a commit into the working directory.

    The index is left untouched.

    :param path: The file to restore.
    :param commit_id: A full or abbreviated commit id. Defaults to HEAD.
    :raises NoSuchCommitError: If ``commit_id`` does not name a commit.
    :raises FileNotInCommitError: If the commit does not track ``path``."""
    source: Commit
    if commit_id is None:
        source = repo.head_commit(state)
    else:
        _, source = repo.graph.resolve(commit_id)

    msg = 'File does not exist in that commit.'
    try:
        tracked = TrackedPath(path)
    except ValueError as e:
        raise FileNotInCommitError(msg) from e
    if tracked not in source.tree:
        raise FileNotInCommitError(msg)

    write_blob(repo, tracked, source.tree[tracked])
    logger.info('Checked out %s', tracked)


def checkout_branch(repo: 'Repository', state: RepositoryState, name: str) -> None:
    """Make ``name`` the current branch and replace the working files with its tip's tree.

    :raises NoSuchBranchError: If the branch does not exist.
    :raises SameBranchError: If ``name`` is already the current branch.
    :raises UntrackedFileError: If an untracked working file would be overwritten."""
    if not state.branches.exists(name):
        msg = 'No such branch exists.'
        raise NoSuchBranchError(msg)
    if name == state.current_branch:
        msg = 'No need to checkout the current branch.'
        raise SameBranchError(msg)

    target = repo.graph.load(state.branches.tip(name))
    guard_untracked(repo, state, target.tree)

    # The target tree is authoritative: clear the directory, then write it out in full
    for path in repo.worktree.files():
        repo.worktree.delete(path)
    write_tree(repo, target.tree)

    state.switch(name)
    state.index.clear()
    logger.info('Switched to branch %s', name)


def reset(repo: 'Repository', state: RepositoryState, commit_id: str) -> ContentHash:
    """Move the current branch to an arbitrary commit and check out its files.

    :param commit_id: A full or abbreviated commit id.
    :return: The full hash of the commit reset to.
    :raises NoSuchCommitError: If ``commit_id`` does not name a commit.
    :raises UntrackedFileError: If an untracked working file would be overwritten."""
    target_hash, target = repo.graph.resolve(commit_id)
    guard_untracked(repo, state, target.tree)

    for path in repo.head_commit(state).tree:
        if path not in target.tree:
            repo.worktree.delete(path)
    write_tree(repo, target.tree)

    state.advance(target_hash)
    state.index.clear()
    logger.info('Reset %s to %s', state.current_branch, target_hash)

    return target_hash
