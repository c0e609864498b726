"""YAML configuration loader with command-line overrides."""
from __future__ import annotations

import copy
from functools import reduce
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

import yaml

DRAW_DEFAULTS: Dict[str, Any] = {
    "size": 1000,
    "alpha": 5.0,
    "mu": 0.0,
    "tau": 1.0,
    "sign": "positive",
    "algo": "hormann",
    "n_jobs": 1,
    "max_trials": None,
}


def load_config(path: Path) -> dict[str, Any]:
    """Load a YAML config file into a dictionary."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping at top level.")
    return data


def deep_update(dst: Dict[str, Any], src: Mapping[str, Any]) -> Dict[str, Any]:
    for k, v in src.items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            deep_update(dst[k], v)
        else:
            dst[k] = v
    return dst


def load_and_merge_configs(paths: Sequence[Path]) -> Dict[str, Any]:
    """
    Load and recursively merge YAML configs. Honors a top-level `defaults`
    key by loading and merging parent configs (relative to the current file).
    """

    def _load_with_defaults(path: Path, seen: frozenset) -> Dict[str, Any]:
        norm_path = Path(path).resolve()
        if norm_path in seen:
            cycle = " -> ".join(str(p) for p in (*seen, norm_path))
            raise ValueError(f"Config defaults cycle detected: {cycle}")
        seen = seen | {norm_path}

        data = load_config(norm_path)
        defaults = data.pop("defaults", None)
        base: Dict[str, Any] = {}
        if defaults:
            if isinstance(defaults, (str, Path)):
                defaults = [defaults]
            if not isinstance(defaults, list):
                raise ValueError(f"'defaults' in {norm_path} must be string or list.")
            for item in defaults:
                ref = Path(item)
                if not ref.is_absolute():
                    candidates = [norm_path.parent / ref, Path.cwd() / ref]
                    resolved = next((c.resolve() for c in candidates if c.exists()), None)
                    if resolved is None:
                        raise FileNotFoundError(f"Default config '{item}' referenced from {norm_path} not found.")
                    ref = resolved
                base = deep_update(base, _load_with_defaults(ref, seen))
        return deep_update(base, data)

    cfg: Dict[str, Any] = {}
    for p in paths:
        deep_update(cfg, _load_with_defaults(Path(p), frozenset()))
    return cfg


def _cast_value(v: str) -> Any:
    low = v.lower()
    if low in {"true", "false"}:
        return low == "true"
    if low in {"null", "none"}:
        return None
    try:
        if any(ch in low for ch in (".", "e")):
            return float(v)
        return int(v)
    except ValueError:
        return v


def parse_overrides(pairs: List[str]) -> Dict[str, Any]:
    """
    Parse CLI overrides like:
      ['seed=42', 'draw.alpha=3.5', 'draw.sign=negative', 'diagnostics.ks=true']

    Returns a nested dict merged later into config.
    """
    root: Dict[str, Any] = {}
    for item in pairs:
        if "=" not in item:
            raise ValueError(f"Override must be key=value, got: '{item}'")
        k, v = item.split("=", 1)
        keys = k.split(".")
        d = reduce(lambda acc, kk: acc.setdefault(kk, {}), keys[:-1], root)
        if not isinstance(d, dict):
            raise ValueError(f"Key path conflict at '{k}'")
        d[keys[-1]] = _cast_value(v)
    return root


def merge_overrides(config: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Merge nested overrides into a copy of the config dictionary."""
    return deep_update(copy.deepcopy(dict(config)), overrides)


def resolve_draw_config(config: Mapping[str, Any]) -> Dict[str, Any]:
    """Fill the ``draw`` section with defaults and reject unknown keys."""
    draw = dict(config.get("draw") or {})
    unknown = sorted(set(draw) - set(DRAW_DEFAULTS))
    if unknown:
        raise ValueError(f"Unknown draw option(s): {', '.join(unknown)}")
    resolved = dict(DRAW_DEFAULTS)
    resolved.update(draw)
    return resolved
