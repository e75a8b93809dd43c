"""Exceptions raised by libgitlet.

Two families exist. ``UserError`` subclasses describe a command that cannot be carried out as asked;
their message is meant to be shown to the user verbatim. Everything else is a system error: the
repository on disk is missing, unreadable or corrupt."""


class RepositoryError(Exception):
    """Exception raised for repository-related errors."""


class RepositoryNotFoundError(RepositoryError):
    """Exception raised when a repository is not found."""


class CorruptObjectError(RepositoryError):
    """A stored object exists but cannot be decoded."""


class CorruptStateError(RepositoryError):
    """The persisted repository state cannot be read or is inconsistent."""


class ObjectNotFoundError(RepositoryError):
    """No stored object matches the requested hash or prefix."""


class UserError(RepositoryError):
    """A command was rejected. Nothing was changed."""


class RepositoryExistsError(UserError):
    pass


class AmbiguousObjectError(UserError):
    pass


class NoSuchCommitError(UserError):
    pass


class NoCommonAncestorError(UserError):
    pass


class NoMatchingCommitError(UserError):
    pass


class WorkingFileNotFoundError(UserError):
    pass


class NothingToRemoveError(UserError):
    pass


class EmptyMessageError(UserError):
    pass


class NothingToCommitError(UserError):
    pass


class FileNotInCommitError(UserError):
    pass


class NoSuchBranchError(UserError):
    pass


class BranchExistsError(UserError):
    pass


class CurrentBranchError(UserError):
    pass


class SameBranchError(UserError):
    pass


class UntrackedFileError(UserError):
    """A working file that is not tracked by HEAD would be overwritten."""

    def __init__(self, msg: str, paths: list[str] | None = None) -> None:
        super().__init__(msg)
        self.paths = paths or []


class UncommittedChangesError(UserError):
    pass


class SelfMergeError(UserError):
    pass
