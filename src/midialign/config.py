# src/midialign/config.py
from __future__ import annotations
import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

log = logging.getLogger(__name__)

# Paket-Root: .../src/midialign
PKG_ROOT = Path(__file__).resolve().parent
DEFAULT_CFG_PATH = PKG_ROOT / "config.default.yaml"
USER_CFG_PATH = Path.home() / ".config" / "midialign" / "config.yaml"


def _safe_load(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        log.warning("ignoring config %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        log.warning("ignoring config %s: top level is not a mapping", path)
        return {}
    return data


def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(a)
    for k, v in (b or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


def load_config(
    user_path: Optional[Path] = None,
    default_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Defaults from the package merged with user overrides.
    A missing or broken user file leaves the defaults in effect.
    """
    dpath = Path(default_path) if default_path else DEFAULT_CFG_PATH
    upath = Path(user_path) if user_path else USER_CFG_PATH

    cfg = _deep_merge(_safe_load(dpath), _safe_load(upath))
    for section in ("view", "playback", "input", "render", "overlay", "watch"):
        cfg.setdefault(section, {})
    return cfg


def section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    return cfg.get(name) or {}
