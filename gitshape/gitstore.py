# gitshape/gitstore.py
"""
pygit2 (libgit2) backed stores.

GitSourceStore reads an existing repository. GitTargetStore creates a
fresh one and writes the rewritten history into it.
"""

import logging
from pathlib import Path
from typing import Dict, List

import pygit2

from .dag import Commit, CommitId, Identity
from .store import SourceStore, SourceStoreError, TargetStore, TargetStoreError

logger = logging.getLogger(__name__)

GIT_ERRORS = (pygit2.GitError, KeyError, ValueError)


def identity_from_signature(sig: pygit2.Signature, negative_utc: bool = False) -> Identity:
    """Snapshot a libgit2 signature, keeping name and email as raw bytes."""
    return Identity(
        name=sig.raw_name,
        email=sig.raw_email,
        time=sig.time,
        offset=sig.offset,
        negative_utc=negative_utc and sig.offset == 0,
    )


def negative_utc_headers(raw: bytes) -> Dict[bytes, bool]:
    """
    Which signature headers of a raw commit carry a `-0000` zone.

    libgit2 parses `-0000` as offset 0 and drops the sign, so it is read
    from the header bytes directly. Only the first author and committer
    lines count, as in libgit2.
    """
    found: Dict[bytes, bool] = {}
    for line in raw.split(b"\n\n", 1)[0].split(b"\n"):
        field, _, value = line.partition(b" ")
        if field in (b"author", b"committer") and field not in found:
            found[field] = value.endswith(b" -0000")
    return found


def format_signature(identity: Identity) -> bytes:
    """Signature as stored in a commit header: `name <email> time +hhmm`."""
    for value in (identity.name, identity.email):
        if any(c in value for c in b"<>\n"):
            raise ValueError(f"Signature field {value!r} contains '<', '>' or a newline")
    negative = identity.offset < 0 or (identity.offset == 0 and identity.negative_utc)
    sign = b"-" if negative else b"+"
    hours, minutes = divmod(abs(identity.offset), 60)
    return b"%s <%s> %d %s%02d%02d" % (identity.name, identity.email, identity.time, sign, hours, minutes)


def format_commit(author: Identity, committer: Identity, message: str,
                  tree: str, parents: List[CommitId]) -> bytes:
    """Raw commit object, laid out the way libgit2 writes it."""
    lines = [b"tree " + tree.encode("ascii")]
    lines.extend(b"parent " + p.encode("ascii") for p in parents)
    lines.append(b"author " + format_signature(author))
    lines.append(b"committer " + format_signature(committer))
    return b"\n".join(lines) + b"\n\n" + message.encode("utf-8")


class GitSourceStore(SourceStore):
    """Read-only view of an existing git repository."""

    def __init__(self, repo: pygit2.Repository):
        self.repo = repo

    @classmethod
    def open(cls, path: Path | str) -> "GitSourceStore":
        """Open an existing repository."""
        try:
            repo = pygit2.Repository(str(path))
        except GIT_ERRORS as e:
            raise SourceStoreError(f"Failed to open repository {path}: {e}") from e
        logger.info(f"Opened source repository {repo.path}")
        return cls(repo)

    def resolve(self, name: str) -> CommitId:
        try:
            obj = self.repo.lookup_reference_dwim(name)
        except GIT_ERRORS:
            # Not a reference: try commit-ish syntax (hex id, HEAD~2, ...)
            try:
                obj = self.repo.revparse_single(name)
            except GIT_ERRORS as e:
                raise SourceStoreError(f"Failed to resolve reference {name!r}: {e}") from e

        try:
            commit = obj.peel(pygit2.Commit)
        except GIT_ERRORS as e:
            raise SourceStoreError(f"Reference {name!r} does not point to a commit: {e}") from e

        logger.info(f"Resolved {name!r} to {commit.id}")
        return str(commit.id)

    def get_commit(self, commit_id: CommitId) -> Commit:
        try:
            obj = self.repo[commit_id]
            if not isinstance(obj, pygit2.Commit):
                raise ValueError(f"object is a {type(obj).__name__}, not a commit")
            negative = negative_utc_headers(obj.read_raw())
            return Commit(
                commit_id=str(obj.id),
                parents=tuple(str(p) for p in obj.parent_ids),
                tree=str(obj.tree_id),
                author=identity_from_signature(obj.author, negative.get(b"author", False)),
                committer=identity_from_signature(obj.committer, negative.get(b"committer", False)),
                message=obj.raw_message,
            )
        except GIT_ERRORS as e:
            raise SourceStoreError(f"Failed to read commit {commit_id}: {e}") from e


class GitTargetStore(TargetStore):
    """A freshly created repository receiving the rewritten history."""

    def __init__(self, repo: pygit2.Repository):
        self.repo = repo

    @classmethod
    def create(cls, path: Path | str, bare: bool = False) -> "GitTargetStore":
        """
        Initialise a new repository at path.

        The path must not exist, or be an empty directory.
        """
        path = Path(path)
        try:
            populated = path.exists() and (not path.is_dir() or any(path.iterdir()))
        except OSError as e:
            raise TargetStoreError(f"Failed to inspect target {path}: {e}") from e
        if populated:
            raise TargetStoreError(f"Target {path} already exists and is not empty")
        try:
            repo = pygit2.init_repository(str(path), bare=bare)
        except (pygit2.GitError, OSError) as e:
            raise TargetStoreError(f"Failed to create repository {path}: {e}") from e
        logger.info(f"Created target repository {repo.path}")
        return cls(repo)

    def write_empty_tree(self) -> str:
        try:
            tree_id = self.repo.TreeBuilder().write()
        except pygit2.GitError as e:
            raise TargetStoreError(f"Failed to write empty tree: {e}") from e
        return str(tree_id)

    def create_commit(
        self,
        author: Identity,
        committer: Identity,
        message: str,
        tree: str,
        parents: List[CommitId],
    ) -> CommitId:
        # Written as a raw object so names and emails keep their exact
        # bytes (Signature() re-encodes and trims them)
        try:
            for object_id in (tree, *parents):
                if object_id not in self.repo:
                    raise KeyError(f"object {object_id} not in target")
            data = format_commit(author, committer, message, tree, parents)
            oid = self.repo.odb.write(pygit2.enums.ObjectType.COMMIT, data)
        except GIT_ERRORS as e:
            raise TargetStoreError(f"Failed to write commit: {e}") from e
        return str(oid)

    def set_branch(self, name: str, commit_id: CommitId) -> None:
        try:
            # Reference API, not create_branch: libgit2 refuses to force-move
            # a branch that HEAD points at
            self.repo.references.create(f"refs/heads/{name}", pygit2.Oid(hex=commit_id), force=True)
        except GIT_ERRORS as e:
            raise TargetStoreError(f"Failed to write branch {name}: {e}") from e
        logger.info(f"Branch {name} -> {commit_id}")
