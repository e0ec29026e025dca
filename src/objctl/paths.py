"""Path management for the persisted configuration."""

from __future__ import annotations

import os
from pathlib import Path


def get_default_config_path() -> Path:
    """
    Single source of truth for the config file location.
    - Default: ./objctl.yaml
    - Override: env OBJCTL_CONFIG
    """
    p = os.environ.get("OBJCTL_CONFIG", "objctl.yaml")
    return Path(p).resolve()
