from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from dotenv import load_dotenv


# Load environment variables from a .env file located in the project root (if present).
load_dotenv()

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}


def _resolve_default_config_path() -> Path:
    """Return the default configuration file path.

    The function looks in the current working directory for a ``configs``
    directory and prefers ``config.json`` over ``config.example.json``.
    """

    configs_dir = Path.cwd() / "configs"
    primary = configs_dir / "config.json"
    fallback = configs_dir / "config.example.json"

    if primary.is_file():
        return primary
    if fallback.is_file():
        return fallback

    raise FileNotFoundError(
        f"Could not find configuration file in {configs_dir} "
        "(expected config.json or config.example.json)."
    )


def _parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"Setting {name!r} must be a boolean, got {value!r}")


def _section(config: Optional[Mapping[str, Any]], name: str) -> Mapping[str, Any]:
    section = (config or {}).get(name, {}) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Config section {name!r} must be a JSON object.")
    return section


def load_config(path: Union[str, Path, None] = None) -> Dict[str, Any]:
    """Load configuration from JSON and return it as a dict.

    If *path* is ``None``, the configuration is loaded from the default
    location: ``configs/config.json`` (if it exists in the current working
    directory) or ``configs/config.example.json`` as a fallback.

    ``HARVEST_BOT_SCAN_INTERVAL`` and ``HARVEST_BOT_GO_HOME`` from the
    environment (or ``.env``) override the matching file settings.
    """

    config_path: Path
    if path is None:
        config_path = _resolve_default_config_path()
    else:
        config_path = Path(path)

    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as config_file:
        data: Mapping[str, Any] = json.load(config_file)

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a JSON object at the top level.")

    config: Dict[str, Any] = dict(data)

    interval_env = os.environ.get("HARVEST_BOT_SCAN_INTERVAL")
    if interval_env:
        scan_cfg = dict(config.get("scan", {}) or {})
        scan_cfg["interval"] = int(interval_env)
        config["scan"] = scan_cfg

    go_home_env = os.environ.get("HARVEST_BOT_GO_HOME")
    if go_home_env:
        farm_cfg = dict(config.get("farm", {}) or {})
        farm_cfg["go_home"] = _parse_bool(go_home_env, "HARVEST_BOT_GO_HOME")
        config["farm"] = farm_cfg

    return config


@dataclass(frozen=True)
class FarmSettings:
    """Behaviour switches of the farming task."""

    check_inventory: bool = False
    put_drops_in_chest: bool = False
    replant_crops: bool = True
    replant_nether_wart: bool = False
    go_home: bool = False
    stash_max_distance: float = 6.0

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> FarmSettings:
        cfg = _section(config, "farm")
        defaults = cls()
        distance = float(cfg.get("stash_max_distance", defaults.stash_max_distance))
        if distance <= 0:
            raise ValueError(f"farm.stash_max_distance must be positive, got {distance}")
        return cls(
            check_inventory=_parse_bool(cfg.get("check_inventory", defaults.check_inventory), "farm.check_inventory"),
            put_drops_in_chest=_parse_bool(
                cfg.get("put_drops_in_chest", defaults.put_drops_in_chest), "farm.put_drops_in_chest"
            ),
            replant_crops=_parse_bool(cfg.get("replant_crops", defaults.replant_crops), "farm.replant_crops"),
            replant_nether_wart=_parse_bool(
                cfg.get("replant_nether_wart", defaults.replant_nether_wart), "farm.replant_nether_wart"
            ),
            go_home=_parse_bool(cfg.get("go_home", defaults.go_home), "farm.go_home"),
            stash_max_distance=distance,
        )


@dataclass(frozen=True)
class ScanSettings:
    """Periodic world scan parameters. ``interval`` 0 disables rescans."""

    interval: int = 5
    max_results: int = 256
    radius_xz: int = 10
    radius_y: int = 10

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> ScanSettings:
        cfg = _section(config, "scan")
        defaults = cls()
        settings = cls(
            interval=int(cfg.get("interval", defaults.interval)),
            max_results=int(cfg.get("max_results", defaults.max_results)),
            radius_xz=int(cfg.get("radius_xz", defaults.radius_xz)),
            radius_y=int(cfg.get("radius_y", defaults.radius_y)),
        )
        for name in ("interval", "max_results", "radius_xz", "radius_y"):
            if getattr(settings, name) < 0:
                raise ValueError(f"scan.{name} must not be negative, got {getattr(settings, name)}")
        return settings
