# gitshape/store.py
"""
Object store capabilities used by the rewrite.

The engine only reads commits from a SourceStore and writes trees,
commits and one branch to a TargetStore. Backends implement these
(see gitstore.py); tests use an in-memory store.
"""

from abc import ABC, abstractmethod
from typing import List

from .dag import Commit, CommitId, Identity


class StoreError(Exception):
    """A store operation failed. Always fatal for the run."""


class SourceStoreError(StoreError):
    """Opening the source, resolving a reference or reading a commit failed."""


class TargetStoreError(StoreError):
    """Creating the target or writing a tree, commit or branch failed."""


class SourceStore(ABC):
    """Read side: resolve a name and fetch commits."""

    @abstractmethod
    def resolve(self, name: str) -> CommitId:
        """
        Resolve a short reference name (branch, tag, commit-ish) to a commit id.

        Raises:
            SourceStoreError: if the name is unknown or does not peel to a commit
        """
        pass

    @abstractmethod
    def get_commit(self, commit_id: CommitId) -> Commit:
        """
        Fetch a commit by id.

        Raises:
            SourceStoreError: if the commit cannot be read
        """
        pass


class TargetStore(ABC):
    """Write side: empty tree, commits and a branch."""

    @abstractmethod
    def write_empty_tree(self) -> str:
        """Write the empty tree and return its id."""
        pass

    @abstractmethod
    def create_commit(
        self,
        author: Identity,
        committer: Identity,
        message: str,
        tree: str,
        parents: List[CommitId],
    ) -> CommitId:
        """Write a commit and return its new id. Parent order is kept."""
        pass

    @abstractmethod
    def set_branch(self, name: str, commit_id: CommitId) -> None:
        """Create the branch, or force-move it if it exists."""
        pass
