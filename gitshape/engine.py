# gitshape/engine.py
"""
History rewrite engine.

Rewrites the ancestor closure of a start commit by:
1. Walking commits parents-first (dag.parent_first_order)
2. Redacting author and committer
3. Writing a content-free commit with the mapped parents
4. Recording old id -> new id
5. Pointing the output branch at the rewritten start commit

Nothing is reachable in the target until step 5, so an interrupted or
failed run leaves only unreferenced objects behind.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .builder import CommitBuilder, PLACEHOLDER_MESSAGE
from .dag import Commit, CommitId, CommitMap, TraversalStats, parent_first_order
from .redact import Redactor
from .store import SourceStore, StoreError, TargetStore

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "master"


@dataclass
class RewriteResult:
    """Result of rewriting a history."""
    success: bool
    start_id: CommitId
    branch: str
    branch_target: Optional[CommitId] = None
    commits_written: int = 0
    error: Optional[str] = None
    elapsed: float = 0.0


@dataclass
class RewriteProgress:
    """Progress update, sent once per rewritten commit."""
    commit_id: CommitId
    new_id: CommitId
    count: int
    elapsed: float

    @property
    def rate(self) -> float:
        return self.count / self.elapsed if self.elapsed > 0 else 0.0


# Progress callback type
ProgressCallback = Callable[[RewriteProgress], None]


class Engine:
    """
    Rewrite engine.

    Owns the commit map and the traversal for the duration of one run.
    """

    def __init__(
        self,
        source: SourceStore,
        target: TargetStore,
        redactor: Optional[Redactor] = None,
        branch: str = DEFAULT_BRANCH,
        message: str = PLACEHOLDER_MESSAGE,
    ):
        self.source = source
        self.target = target
        self.redactor = redactor or Redactor(enabled=False)
        self.branch = branch
        self.builder = CommitBuilder(target, message=message)
        self.commit_map = CommitMap()
        self.stats = TraversalStats()
        self.commits_written = 0
        self._progress_callback: Optional[ProgressCallback] = None

    def set_progress_callback(self, callback: ProgressCallback):
        """Set callback for progress updates."""
        self._progress_callback = callback

    def _report_progress(self, progress: RewriteProgress):
        """Report progress to callback if set."""
        if self._progress_callback:
            try:
                self._progress_callback(progress)
            except Exception as e:
                logger.warning(f"Progress callback error: {e}")

    def rewrite_commit(self, commit: Commit) -> CommitId:
        """Write the rewritten form of a commit whose parents are all mapped."""
        parents = self.commit_map.resolve(commit.parents)
        new_id = self.builder.build(
            author=self.redactor.redact(commit.author),
            committer=self.redactor.redact(commit.committer),
            parents=parents,
        )
        self.commit_map.record(commit.commit_id, new_id)
        logger.debug(f"Rewrote {commit.commit_id} -> {new_id}")
        return new_id

    def finalize_ref(self, start_id: CommitId) -> CommitId:
        """Point the output branch at the rewritten start commit."""
        target_id = self.commit_map[start_id]
        self.target.set_branch(self.branch, target_id)
        return target_id

    def rewrite(self, start_id: CommitId) -> RewriteResult:
        """
        Rewrite the ancestor closure of start_id into the target store.

        Args:
            start_id: Source commit whose history is copied

        Returns:
            RewriteResult; on failure the branch is not written
        """
        start_time = time.time()
        logger.info(f"Rewriting history of {start_id} (redaction {'on' if self.redactor.enabled else 'off'})")

        try:
            for commit in parent_first_order(start_id, self.source.get_commit, self.stats):
                new_id = self.rewrite_commit(commit)
                self.commits_written += 1
                self._report_progress(RewriteProgress(
                    commit_id=commit.commit_id,
                    new_id=new_id,
                    count=self.commits_written,
                    elapsed=time.time() - start_time,
                ))

            branch_target = self.finalize_ref(start_id)

        except StoreError as e:
            logger.error(f"Rewrite of {start_id} aborted after {self.commits_written} commits: {e}")
            return RewriteResult(
                success=False,
                start_id=start_id,
                branch=self.branch,
                commits_written=self.commits_written,
                error=str(e),
                elapsed=time.time() - start_time,
            )

        elapsed = time.time() - start_time
        logger.info(f"Rewrote {self.commits_written} commits in {elapsed:.2f}s, {self.branch} -> {branch_target}")
        return RewriteResult(
            success=True,
            start_id=start_id,
            branch=self.branch,
            branch_target=branch_target,
            commits_written=self.commits_written,
            elapsed=elapsed,
        )
