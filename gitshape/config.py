# gitshape/config.py
"""
Run configuration.

Settings come from (lowest to highest precedence) defaults, an optional
YAML file, and command-line flags. The redaction secret may also come
from the GITSHAPE_KEY environment variable so it stays out of shell
history.

Example config:

    redact: true
    key: my-secret
    branch: master
    message: redacted
"""

import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .builder import PLACEHOLDER_MESSAGE
from .engine import DEFAULT_BRANCH
from .redact import RedactionKey, Redactor

logger = logging.getLogger(__name__)

KEY_ENV_VAR = "GITSHAPE_KEY"


@dataclass(frozen=True)
class RewriteConfig:
    """Settings for one rewrite run."""
    redact: bool = False
    key: Optional[str] = field(default=None, repr=False)
    branch: str = DEFAULT_BRANCH
    message: str = PLACEHOLDER_MESSAGE

    def __post_init__(self):
        if not self.branch:
            raise ValueError("Branch name must not be empty")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RewriteConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "RewriteConfig":
        """Parse config from a YAML string."""
        try:
            data = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ValueError("Config must be a YAML mapping")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Path | str) -> "RewriteConfig":
        """Load config from a YAML file."""
        with open(path, "r") as f:
            return cls.from_yaml(f.read())

    def with_overrides(self, **values: Any) -> "RewriteConfig":
        """Return a copy with every non-None value applied."""
        return replace(self, **{k: v for k, v in values.items() if v is not None})

    def with_env(self, environ: Optional[Dict[str, str]] = None) -> "RewriteConfig":
        """Fill in the key from the environment if none was given."""
        environ = os.environ if environ is None else environ
        if self.key is None and environ.get(KEY_ENV_VAR):
            logger.debug(f"Using redaction key from ${KEY_ENV_VAR}")
            return replace(self, key=environ[KEY_ENV_VAR])
        return self

    def make_redactor(self) -> Redactor:
        """Build the redactor, deriving the key once."""
        if not self.redact:
            return Redactor(enabled=False)
        return Redactor(enabled=True, key=RedactionKey.derive(self.key))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["key"] is not None:
            data["key"] = "***"
        return data
