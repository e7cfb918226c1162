# core/config.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml

# nested `segment:` keys the rest of the code reads as flat keys
_SEGMENT_KEYS = ("min_leaf_size", "max_splits", "workers")


def _read_yaml(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(a)
    out.update(b)
    return out


def _postprocess(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Light normalization so the rest of the code sees flat keys it actually reads.
    """
    seg = cfg.get("segment")
    if isinstance(seg, dict):
        for k in _SEGMENT_KEYS:
            if k not in cfg and k in seg:
                cfg[k] = seg[k]
    if isinstance(cfg.get("max_splits"), str):
        # allow "inf" / "none" spelled out in YAML
        if cfg["max_splits"].strip().lower() in {"inf", "infinity", "none", "unbounded"}:
            cfg["max_splits"] = None
    return cfg


def load_config(
    config: str | os.PathLike | None = None,
    profile: str | None = None,
    **kwargs,
) -> Dict[str, Any]:
    """
    Resolve config with the following rules:

      A) If an explicit file is provided, it wins outright:
         1) --config (or legacy path=)
         2) $DEPART_CONFIG

      B) Otherwise, layer files:
         3) config/default.yaml (if present)
         4) config/profiles/<profile>.yaml when --profile or $DEPART_PROFILE is set
            (profile overlays default)

    Returns a (shallow) merged dict; also flattens the `segment:` block.
    """
    if config is None and "path" in kwargs and kwargs["path"]:
        config = kwargs["path"]

    repo_root = Path(__file__).resolve().parents[1]

    if config:
        p = Path(config)
        if not p.is_file():
            raise FileNotFoundError(f"--config not found: {p}")
        return _postprocess(_read_yaml(p))

    env_path = os.getenv("DEPART_CONFIG")
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return _postprocess(_read_yaml(p))

    cfg: Dict[str, Any] = {}

    fallback = repo_root / "config" / "default.yaml"
    if fallback.is_file():
        cfg = _merge(cfg, _read_yaml(fallback))

    prof = profile or os.getenv("DEPART_PROFILE")
    if prof:
        p = repo_root / "config" / "profiles" / f"{prof}.yaml"
        if not p.is_file():
            raise FileNotFoundError(f"profile not found: {p}")
        prof_cfg = _read_yaml(p)
        # a profile's segment block overlays the default's key by key
        if isinstance(cfg.get("segment"), dict) and isinstance(prof_cfg.get("segment"), dict):
            prof_cfg["segment"] = _merge(cfg["segment"], prof_cfg["segment"])
        cfg = _merge(cfg, prof_cfg)

    return _postprocess(cfg)
