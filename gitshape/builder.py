# gitshape/builder.py
"""
Commit builder: writes one rewritten commit into the target store.

Every rewritten commit points at the same empty tree and carries the
same placeholder message; only identities and parents vary.
"""

import logging
from typing import List, Optional

from .dag import CommitId, Identity
from .store import TargetStore

logger = logging.getLogger(__name__)

PLACEHOLDER_MESSAGE = "redacted"


class CommitBuilder:
    """
    Materializes rewritten commits in a target store.

    The empty tree is written on first use and reused for every commit.
    """

    def __init__(self, target: TargetStore, message: str = PLACEHOLDER_MESSAGE):
        self.target = target
        self.message = message
        self._empty_tree: Optional[str] = None

    @property
    def empty_tree(self) -> str:
        if self._empty_tree is None:
            self._empty_tree = self.target.write_empty_tree()
            logger.debug(f"Empty tree: {self._empty_tree}")
        return self._empty_tree

    def build(self, author: Identity, committer: Identity, parents: List[CommitId]) -> CommitId:
        """
        Write a commit with the given identities and already-mapped parents.

        Store errors propagate unchanged.
        """
        return self.target.create_commit(
            author=author,
            committer=committer,
            message=self.message,
            tree=self.empty_tree,
            parents=list(parents),
        )
