"""Config file discovery and loading.

Walk-up finder locates ``cartcalc.toml`` the way git finds ``.git/``.
``CARTCALC_CONFIG`` and the ``--config`` CLI flag override discovery.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from cartcalc.config.models import CartcalcConfig

CONFIG_FILENAME = "cartcalc.toml"
CONFIG_ENV_VAR = "CARTCALC_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for cartcalc.toml.

    ``CARTCALC_CONFIG`` is checked first; when it is set but names a
    missing file, no config is used.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if current.parent == current:
            return None
        current = current.parent


def load_config(path: Path | None = None, cwd: Path | None = None) -> CartcalcConfig:
    """Load and validate config from a TOML file.

    Falls back to the code defaults when no file is found.
    """
    if path is None:
        path = find_config(cwd)
    if path is None:
        return CartcalcConfig()

    data: dict[str, Any] = tomllib.loads(path.read_text(encoding="utf-8"))
    return CartcalcConfig.model_validate(data)
