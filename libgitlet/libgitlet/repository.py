"""libgitlet repository management."""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Concatenate, ParamSpec, TypeVar

from . import checkout
from . import merge as merge_engine
from .constants import BLOBS_SUBDIR, COMMITS_SUBDIR, DEFAULT_BRANCH, DEFAULT_REPO_DIR, STATE_FILE
from .exceptions import (EmptyMessageError, NothingToCommitError, NothingToRemoveError, RepositoryExistsError,
                         RepositoryNotFoundError, WorkingFileNotFoundError)
from .graph import CommitGraph, LogEntry
from .merge import MergeResult
from .objects import Commit, ContentHash, TrackedPath
from .plumbing import ObjectStore, hash_bytes, save_blob, save_commit
from .state import BranchTable, RepositoryState, load_state, save_state
from .worktree import WorkingTree

logger = logging.getLogger(__name__)

P = ParamSpec('P')
R = TypeVar('R')


@dataclass
class Status:
    """A snapshot of the branches, the index and the working directory."""

    current_branch: str
    branches: list[str]
    staged: list[TrackedPath] = field(default_factory=list)
    removed: list[TrackedPath] = field(default_factory=list)
    # (path, 'modified' | 'deleted')
    unstaged: list[tuple[TrackedPath, str]] = field(default_factory=list)
    untracked: list[TrackedPath] = field(default_factory=list)


class Repository:
    """Represents a libgitlet repository.

    The repository owns the on-disk locations (object stores, state file, working tree). The mutable state
    is not kept on the instance: it is loaded with :meth:`load_state` (or :meth:`session`) and passed to
    each operation explicitly."""

    def __init__(self, working_dir: Path | str, repo_dir: Path | str | None = None) -> None:
        """Initialize a Repository instance. The repository is not created on disk until `init()` is called.

        :param working_dir: The working directory where the repository will be located.
        :param repo_dir: The name of the repository directory within the working directory.
            Defaults to '.gitlet'."""
        self.working_dir = Path(working_dir)
        self.repo_dir = Path(repo_dir) if repo_dir is not None else Path(DEFAULT_REPO_DIR)

        self.blobs = ObjectStore(self.blobs_dir())
        self.commits = ObjectStore(self.commits_dir())
        self.graph = CommitGraph(self.commits)
        self.worktree = WorkingTree(self.working_dir, self.repo_dir)

    def init(self, default_branch: str = DEFAULT_BRANCH) -> ContentHash:
        """Initialize a new repository in the working directory.

        Creates the object stores, the root commit (empty tree, epoch timestamp) and the default branch
        pointing at it.

        :param default_branch: The name of the default branch to create. Defaults to 'master'.
        :return: The hash of the root commit.
        :raises RepositoryExistsError: If the repository already exists."""
        if self.exists():
            msg = 'A Gitlet version-control system already exists in the current directory.'
            raise RepositoryExistsError(msg)

        self.repo_path().mkdir(parents=True)
        self.blobs_dir().mkdir()
        self.commits_dir().mkdir()

        root_ref = save_commit(self.commits, Commit.initial())
        state = RepositoryState(BranchTable({default_branch: root_ref}), default_branch)
        save_state(self.state_file(), state)
        logger.info('Initialized repository at %s with root commit %s', self.repo_path(), root_ref)

        return root_ref

    def exists(self) -> bool:
        """Check if the repository exists in the working directory.

        :return: True if the repository exists, False otherwise."""
        return self.repo_path().is_dir()

    def repo_path(self) -> Path:
        """Get the path to the repository directory.

        :return: The path to the repository directory."""
        return self.working_dir / self.repo_dir

    def blobs_dir(self) -> Path:
        return self.repo_path() / BLOBS_SUBDIR

    def commits_dir(self) -> Path:
        return self.repo_path() / COMMITS_SUBDIR

    def state_file(self) -> Path:
        return self.repo_path() / STATE_FILE

    @staticmethod
    def requires_repo(func: Callable[Concatenate['Repository', P], R]) -> \
            Callable[Concatenate['Repository', P], R]:
        """Decorate a Repository method to ensure that the repository exists before executing the method.

        :param func: The method to decorate.
        :return: A wrapper function that checks for the repository's existence."""

        @wraps(func)
        def _verify_repo(self: 'Repository', *args: P.args, **kwargs: P.kwargs) -> R:
            if not self.exists():
                msg = f'Repository not initialized at {self.repo_path()}'
                raise RepositoryNotFoundError(msg)

            return func(self, *args, **kwargs)

        return _verify_repo

    @requires_repo
    def load_state(self) -> RepositoryState:
        """Read the persisted branch table, current branch and index.

        :raises CorruptStateError: If the state file is missing or malformed.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        return load_state(self.state_file())

    @requires_repo
    def save_state(self, state: RepositoryState) -> None:
        save_state(self.state_file(), state)

    @contextmanager
    def session(self) -> Generator[RepositoryState, None, None]:
        """Load the state, hand it to the caller and persist it if the block completes.

        If the block raises, nothing is persisted."""
        state = self.load_state()
        yield state
        self.save_state(state)

    @requires_repo
    def head_commit(self, state: RepositoryState) -> Commit:
        """Load the commit HEAD points at."""
        return self.graph.load(state.head)

    @requires_repo
    def add(self, state: RepositoryState, path: str) -> None:
        """Stage the current content of a working file.

        If the file is staged for removal, the removal is cancelled instead. If its content matches HEAD,
        any pending addition for it is dropped. Only files directly under the working directory can be staged.

        :param path: The name of the file to stage.
        :raises WorkingFileNotFoundError: If the file does not exist.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        msg = 'File does not exist.'
        try:
            tracked = TrackedPath(path)
        except ValueError as e:
            raise WorkingFileNotFoundError(msg) from e
        if not self.worktree.exists(tracked):
            raise WorkingFileNotFoundError(msg)

        data = self.worktree.read(tracked)
        blob_hash = hash_bytes(data)

        if state.index.unmark_removed(tracked):
            logger.debug('Cancelled removal of %s', tracked)
            return

        if self.head_commit(state).tree.get(tracked) == blob_hash:
            if state.index.unstage(tracked):
                logger.debug('Unstaged %s, content matches HEAD', tracked)
            return

        blob = save_blob(self.blobs, data)
        state.index.stage(tracked, blob.hash)
        logger.debug('Staged %s as %s', tracked, blob.hash)

    @requires_repo
    def remove(self, state: RepositoryState, path: str) -> None:
        """Unstage a file, and if HEAD tracks it, stage its removal and delete the working copy.

        :raises NothingToRemoveError: If the file is neither staged nor tracked.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        msg = 'No reason to remove the file.'
        try:
            tracked = TrackedPath(path)
        except ValueError as e:
            raise NothingToRemoveError(msg) from e

        head_tree = self.head_commit(state).tree
        if tracked not in state.index.additions and tracked not in head_tree:
            raise NothingToRemoveError(msg)

        state.index.unstage(tracked)
        if tracked in head_tree:
            state.index.mark_removed(tracked)
            self.worktree.delete(tracked)
            logger.debug('Staged removal of %s', tracked)

    @requires_repo
    def commit(self, state: RepositoryState, message: str) -> ContentHash:
        """Record the staged changes as a new commit on the current branch.

        :param message: The commit message.
        :return: The hash of the new commit.
        :raises EmptyMessageError: If the message is empty.
        :raises NothingToCommitError: If nothing is staged.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        if not message:
            msg = 'Please enter a commit message.'
            raise EmptyMessageError(msg)
        if state.index.is_empty():
            msg = 'No changes added to the commit.'
            raise NothingToCommitError(msg)

        return self.record_commit(state, message)

    @requires_repo
    def record_commit(self, state: RepositoryState, message: str,
                      merge_parent: ContentHash | None = None) -> ContentHash:
        """Build a commit from HEAD's tree and the index, store it and advance the current branch.

        The commit is complete, merge parent included, before it is hashed and written.

        :return: The hash of the new commit."""
        parent_ref = state.head
        tree = dict(self.graph.load(parent_ref).tree)
        tree.update(state.index.additions)
        for path in state.index.removals:
            tree.pop(path, None)

        commit = Commit(message, int(datetime.now().timestamp()), parent_ref, merge_parent, tree)
        commit_ref = save_commit(self.commits, commit)

        state.advance(commit_ref)
        state.index.clear()
        logger.info('Committed %s on %s', commit_ref, state.current_branch)

        return commit_ref

    @requires_repo
    def log(self, state: RepositoryState) -> Generator[LogEntry, None, None]:
        """Generate the first-parent history of HEAD, newest first."""
        return self.graph.history(state.head)

    @requires_repo
    def global_log(self) -> Generator[LogEntry, None, None]:
        """Generate every commit ever made, in no particular order."""
        return self.graph.all_commits()

    @requires_repo
    def find(self, message: str) -> list[ContentHash]:
        """Return the ids of all commits with exactly the given message.

        :raises NoMatchingCommitError: If there are none."""
        return self.graph.find(message)

    @requires_repo
    def add_branch(self, state: RepositoryState, branch: str) -> None:
        """Create a new branch pointing at HEAD. The current branch does not change.

        :raises BranchExistsError: If the branch already exists."""
        state.branches.create(branch, state.head)
        logger.info('Created branch %s at %s', branch, state.head)

    @requires_repo
    def delete_branch(self, state: RepositoryState, branch: str) -> None:
        """Delete a branch pointer. Its commits stay in the store.

        :raises NoSuchBranchError: If the branch does not exist.
        :raises CurrentBranchError: If the branch is the current branch."""
        state.branches.delete(branch, state.current_branch)
        logger.info('Deleted branch %s', branch)

    @requires_repo
    def checkout_file(self, state: RepositoryState, path: str, commit_id: str | None = None) -> None:
        checkout.checkout_path(self, state, path, commit_id)

    @requires_repo
    def checkout_branch(self, state: RepositoryState, branch: str) -> None:
        checkout.checkout_branch(self, state, branch)

    @requires_repo
    def reset(self, state: RepositoryState, commit_id: str) -> ContentHash:
        return checkout.reset(self, state, commit_id)

    @requires_repo
    def merge(self, state: RepositoryState, branch: str) -> MergeResult:
        return merge_engine.merge(self, state, branch)

    @requires_repo
    def status(self, state: RepositoryState) -> Status:
        """Describe the branches, the index, and how the working directory differs from both."""
        head_tree = self.head_commit(state).tree
        additions, removals = state.index.additions, state.index.removals

        unstaged: list[tuple[TrackedPath, str]] = []
        for path in sorted(head_tree.keys() | additions.keys()):
            expected = additions.get(path)
            if expected is None:
                if path in removals:
                    continue
                expected = head_tree[path]

            on_disk = self.worktree.hash(path)
            if on_disk is None:
                unstaged.append((path, 'deleted'))
            elif on_disk != expected:
                unstaged.append((path, 'modified'))

        untracked = [path for path in self.worktree.files()
                     if path in removals or (path not in additions and path not in head_tree)]

        return Status(
            current_branch=state.current_branch,
            branches=state.branches.names(),
            staged=sorted(additions),
            removed=sorted(removals),
            unstaged=unstaged,
            untracked=untracked,
        )
