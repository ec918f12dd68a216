# gitshape - Content-free copies of git history
#
# Rewrites the ancestor closure of a commit into a new repository,
# keeping the graph (parents, parent order, timestamps) and dropping
# everything else: trees become empty, messages become a placeholder,
# and identities can be replaced by keyed pseudonyms.
#
# Core concepts:
# - Commit / Identity: read-only snapshots from the source store
# - parent_first_order: iterative parents-first walk of the closure
# - Redactor: identity -> identity or deterministic pseudonym
# - CommitBuilder: writes one content-free commit
# - Engine: drives the walk and points the output branch at the result

from .dag import Commit, CommitId, CommitMap, Identity, parent_first_order
from .redact import RedactionKey, Redactor
from .store import SourceStore, TargetStore, StoreError, SourceStoreError, TargetStoreError
from .builder import CommitBuilder, PLACEHOLDER_MESSAGE
from .engine import Engine, RewriteResult, RewriteProgress
from .config import RewriteConfig

__all__ = [
    # Model
    "Commit",
    "CommitId",
    "CommitMap",
    "Identity",
    "parent_first_order",
    # Redaction
    "RedactionKey",
    "Redactor",
    # Stores
    "SourceStore",
    "TargetStore",
    "StoreError",
    "SourceStoreError",
    "TargetStoreError",
    # Rewrite
    "CommitBuilder",
    "PLACEHOLDER_MESSAGE",
    "Engine",
    "RewriteResult",
    "RewriteProgress",
    "RewriteConfig",
]

__version__ = "0.1.0"
