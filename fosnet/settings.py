"""Build settings and the YAML configuration that feeds them."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"


@dataclass(frozen=True)
class ParserSettings:
    """Switches deciding which optional scenario content is taken into account."""

    demand: bool = True
    traffic_lights: bool = True
    temporary_blockage: bool = True
    detectors: bool = True
    # striped areas are not traversable unless explicitly enabled
    striped_areas: bool = False


@dataclass(frozen=True)
class GeometrySettings:
    edge_stripe_gap: float = 0.2
    edge_stripe_width: float = 0.2
    narrow_stripe_width: float = 0.2
    wide_stripe_width: float = 0.6


@dataclass(frozen=True)
class BuildSettings:
    parser: ParserSettings = field(default_factory=ParserSettings)
    geometry: GeometrySettings = field(default_factory=GeometrySettings)
    output_indent: Optional[int] = 2

    def with_striped_areas(self, enabled: bool) -> "BuildSettings":
        return replace(self, parser=replace(self.parser, striped_areas=enabled))


_SETTING_KEYS = ("demand", "traffic_lights", "temporary_blockage", "detectors", "striped_areas")

_GEOMETRY_KEYS = {
    "edge_stripe_gap_m": "edge_stripe_gap",
    "edge_stripe_width_m": "edge_stripe_width",
    "narrow_stripe_width_m": "narrow_stripe_width",
    "wide_stripe_width_m": "wide_stripe_width",
}


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    raw = cfg.get(name) or {}
    if not isinstance(raw, dict):
        raise TypeError(f"{name} configuration must be a mapping if provided")
    return raw


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in {"true", "false", "yes", "no"}:
        return value.strip().lower() in {"true", "yes"}
    raise TypeError(f"settings.{key} must be a boolean")


def settings_from_mapping(cfg: Optional[Dict[str, Any]]) -> BuildSettings:
    """Translate a parsed configuration mapping into :class:`BuildSettings`."""

    cfg = cfg or {}
    if not isinstance(cfg, dict):
        raise TypeError("configuration root must be a mapping")

    settings_raw = _section(cfg, "settings")
    unknown = sorted(set(settings_raw) - set(_SETTING_KEYS))
    if unknown:
        raise ValueError(f"unknown settings: {', '.join(unknown)}")
    parser = ParserSettings(**{key: _as_bool(value, key) for key, value in settings_raw.items()})

    geometry_raw = _section(cfg, "geometry")
    geometry_values: Dict[str, float] = {}
    for key, attr in _GEOMETRY_KEYS.items():
        if key not in geometry_raw:
            continue
        try:
            value = float(geometry_raw[key])
        except (TypeError, ValueError) as exc:
            raise TypeError(f"geometry.{key} must be a number") from exc
        if value < 0.0:
            raise ValueError(f"geometry.{key} must not be negative")
        geometry_values[attr] = value
    geometry = GeometrySettings(**geometry_values)

    output_raw = _section(cfg, "output")
    indent = output_raw.get("indent", 2)
    if indent is not None:
        try:
            indent = int(indent)
        except (TypeError, ValueError) as exc:
            raise TypeError("output.indent must be an integer") from exc

    return BuildSettings(parser=parser, geometry=geometry, output_indent=indent)


def load_config(config_path: Union[str, Path, None] = None) -> BuildSettings:
    """Read a YAML configuration file; ``None`` selects the bundled defaults."""

    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    with open(path, encoding="utf-8") as fh:
        cfg = yaml.safe_load(fh)
    return settings_from_mapping(cfg)
