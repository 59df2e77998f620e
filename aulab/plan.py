# aulab/plan.py
from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Dict, List

import yaml

from .core import HEADER_LENGTH, Mode, SimConfig


@dataclass(frozen=True)
class Profile:
    name: str
    config: SimConfig


@functools.lru_cache(maxsize=32)
def _load_plan_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Malformed YAML in plan {path}: {e}") from e


def _as_int(value: Any, key: str, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"profile {name!r}: {key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"profile {name!r}: {key} must be an integer, got {value!r}") from e


def profile_from_dict(d: Dict[str, Any], default_name: str = "profile") -> Profile:
    """
    Build one profile. Accepted keys:
      name, mode (silent|repeat), percent (0..100),
      packet_size (int) or granularity: byte, header_length (default 40)
    """
    name = str(d.get("name") or default_name)
    mode = Mode.parse(d.get("mode", "silent"))
    if "percent" not in d:
        raise ValueError(f"profile {name!r}: percent is required")
    percent = _as_int(d["percent"], "percent", name)
    header_length = _as_int(d.get("header_length", HEADER_LENGTH), "header_length", name)

    granularity = str(d.get("granularity", "packet")).strip().lower()
    if granularity == "byte":
        cfg = SimConfig.byte_granularity(mode, percent, header_length=header_length)
    elif granularity == "packet":
        if "packet_size" not in d:
            raise ValueError(f"profile {name!r}: packet_size is required for packet granularity")
        cfg = SimConfig.packet_granularity(mode, _as_int(d["packet_size"], "packet_size", name), percent, header_length=header_length)
    else:
        raise ValueError(f"profile {name!r}: unknown granularity {granularity!r}")

    try:
        cfg.validate()
    except ValueError as e:
        raise ValueError(f"profile {name!r}: {e}") from e
    return Profile(name=name, config=cfg)


def load_plan(path: str) -> List[Profile]:
    doc = _load_plan_yaml(str(path))
    profiles = doc.get("profiles") if isinstance(doc, dict) else None
    if not profiles:
        raise ValueError(f"No profiles found in plan {path}")
    if not isinstance(profiles, list):
        raise ValueError(f"profiles in plan {path} must be a list")
    for i, p in enumerate(profiles):
        if not isinstance(p, dict):
            raise ValueError(f"profile #{i} in plan {path} must be a mapping, got {p!r}")
    out = [profile_from_dict(p, default_name=f"profile{i}") for i, p in enumerate(profiles)]
    names = [p.name for p in out]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate profile names in plan {path}: {names}")
    return out
