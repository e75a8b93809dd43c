"""Access to the user's working directory."""

import logging
from pathlib import Path

from .objects import ContentHash, TrackedPath
from .plumbing import hash_file

logger = logging.getLogger(__name__)


class WorkingTree:
    """The files a repository tracks, as they currently are on disk.

    Whole-directory scans only look at plain files directly under the root. The repository directory
    itself is never part of the working tree."""

    def __init__(self, root: Path, repo_dir: Path) -> None:
        self.root = root
        self.repo_dir = repo_dir

    def path(self, path: TrackedPath) -> Path:
        return self.root / path

    def files(self) -> list[TrackedPath]:
        """List the plain files at the top level of the working directory, sorted by name."""
        return sorted(TrackedPath(item.name) for item in self.root.iterdir()
                      if item.is_file() and item.name != self.repo_dir.name)

    def exists(self, path: TrackedPath) -> bool:
        return self.path(path).is_file()

    def read(self, path: TrackedPath) -> bytes:
        return self.path(path).read_bytes()

    def hash(self, path: TrackedPath) -> ContentHash | None:
        """Hash a working file, or return None if it does not exist."""
        file = self.path(path)
        if not file.is_file():
            return None
        return hash_file(file)

    def write(self, path: TrackedPath, data: bytes) -> None:
        file = self.path(path)
        file.write_bytes(data)
        logger.debug('Wrote %s', path)

    def delete(self, path: TrackedPath) -> None:
        file = self.path(path)
        if file.is_file():
            file.unlink()
            logger.debug('Deleted %s', path)
