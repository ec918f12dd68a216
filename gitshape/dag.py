# gitshape/dag.py
"""
Core commit graph data structures.

Commits are read-only snapshots pulled from a source store. The only
mutable state of a rewrite is the CommitMap (old id -> new id), which
grows as parent_first_order() hands out commits whose parents are done.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

# Hex object id, assigned by the store
CommitId = str


@dataclass(frozen=True)
class Identity:
    """
    Author or committer of a commit.

    Attributes:
        name: Raw name bytes, exactly as stored
        email: Raw email bytes, exactly as stored
        time: Seconds since the epoch
        offset: Minutes east of UTC
        negative_utc: Zone was stored as -0000 (only meaningful at offset 0)
    """
    name: bytes
    email: bytes
    time: int
    offset: int = 0
    negative_utc: bool = False

    @property
    def when(self) -> datetime:
        """Timestamp as an aware datetime in the identity's own offset."""
        tz = timezone(timedelta(minutes=self.offset))
        return datetime.fromtimestamp(self.time, tz)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name.decode("utf-8", errors="replace"),
            "email": self.email.decode("utf-8", errors="replace"),
            "time": self.time,
            "offset": self.offset,
        }


@dataclass(frozen=True)
class Commit:
    """
    A commit snapshot.

    Attributes:
        commit_id: Id in the source store
        parents: Parent ids, in stored order (first parent first)
        tree: Content tree id (never copied)
        author: Author identity
        committer: Committer identity
        message: Commit message (never copied)
    """
    commit_id: CommitId
    parents: Tuple[CommitId, ...]
    tree: str
    author: Identity
    committer: Identity
    message: bytes = b""


class CommitMap:
    """
    Append-only mapping from source commit id to target commit id.

    Each source commit is recorded at most once.
    """

    def __init__(self):
        self._ids: Dict[CommitId, CommitId] = {}

    def record(self, old_id: CommitId, new_id: CommitId) -> None:
        """Record the target id for a source commit."""
        if old_id in self._ids:
            raise ValueError(f"Commit {old_id} already mapped to {self._ids[old_id]}")
        self._ids[old_id] = new_id

    def resolve(self, parent_ids: Tuple[CommitId, ...] | List[CommitId]) -> List[CommitId]:
        """Map an ordered parent list. Raises KeyError on an unmapped parent."""
        try:
            return [self._ids[p] for p in parent_ids]
        except KeyError as e:
            raise KeyError(f"Parent {e.args[0]} has not been rewritten yet") from None

    def __iter__(self) -> Iterator[CommitId]:
        return iter(self._ids)

    def __getitem__(self, old_id: CommitId) -> CommitId:
        return self._ids[old_id]

    def __contains__(self, old_id: object) -> bool:
        return old_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


@dataclass
class TraversalStats:
    """Counters for one traversal."""
    visited: int = 0
    revisits: int = 0
    duplicates_skipped: int = 0
    loads: int = 0


def parent_first_order(
    start_id: CommitId,
    load: Callable[[CommitId], Commit],
    stats: Optional[TraversalStats] = None,
) -> Iterator[Commit]:
    """
    Yield every commit in the ancestor closure of start_id, parents first.

    Uses an explicit work-list so history depth is not limited by the
    call stack. A commit is marked finalized when the consumer resumes
    the generator after receiving it, so the consumer must have finished
    rewriting it by then.

    Args:
        start_id: Commit to start from (yielded last)
        load: Reads a commit from the source store
        stats: Optional counters, updated in place

    Yields:
        Each commit of the closure exactly once
    """
    if stats is None:
        stats = TraversalStats()

    finalized: Set[CommitId] = set()
    waiting: Dict[CommitId, Commit] = {}
    stack: List[CommitId] = [start_id]

    while stack:
        commit_id = stack.pop()

        # Reachable through several paths (diamonds): already done
        if commit_id in finalized:
            stats.duplicates_skipped += 1
            continue

        commit = waiting.pop(commit_id, None)
        if commit is None:
            commit = load(commit_id)
            stats.loads += 1

        unfinished = [p for p in commit.parents if p not in finalized]
        if not unfinished:
            stats.visited += 1
            yield commit
            finalized.add(commit_id)
            continue

        stats.revisits += 1
        waiting[commit_id] = commit
        stack.append(commit_id)
        stack.extend(unfinished)

    logger.debug(
        f"Traversal done: {stats.visited} commits, {stats.loads} loads, "
        f"{stats.revisits} revisits, {stats.duplicates_skipped} duplicate entries skipped"
    )
