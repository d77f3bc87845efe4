# todoboard — configuration
# Override paths and endpoints via todoboard.yaml, environment, or CLI args.

import logging
import os
import yaml
from pathlib import Path
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional

from .store import DEFAULT_COLUMNS

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("todoboard.yaml")


@dataclass
class Config:
    """Runtime configuration for a board host."""

    # Backing document (relative paths resolve against the config file's dir)
    document_path: str = "todo.json"
    create_if_missing: bool = True
    default_columns: List[Dict[str, str]] = field(
        default_factory=lambda: [dict(c) for c in DEFAULT_COLUMNS]
    )
    indent: int = 2

    # HTTP surface
    host: str = "127.0.0.1"
    port: int = 3000

    # Behavior — change notifications
    debounce_ms: int = 200

    log_level: str = "INFO"

    # Set by load(); not read from YAML
    base_dir: str = "."

    def resolve_paths(self):
        """Expand ~ and anchor a relative document path at base_dir."""
        env_doc = os.environ.get("TODOBOARD_DOCUMENT")
        if env_doc:
            self.document_path = env_doc
        doc = Path(self.document_path).expanduser()
        if not doc.is_absolute():
            doc = Path(self.base_dir) / doc
        self.document_path = str(doc.resolve())

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        path = path or os.environ.get("TODOBOARD_CONFIG")
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                known = {f.name for f in fields(cls)} - {"base_dir"}
                cfg = cls(**{k: v for k, v in data.items() if k in known})
            except (yaml.YAMLError, TypeError, AttributeError) as e:
                logger.warning(f"Invalid config {cfg_path}, using defaults: {e}")
                cfg = cls()
            cfg.base_dir = str(cfg_path.resolve().parent)
        else:
            cfg = cls()
        cfg.resolve_paths()
        return cfg
