from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fosnet.settings import (
    BuildSettings,
    GeometrySettings,
    ParserSettings,
    load_config,
    settings_from_mapping,
)


def test_bundled_config_matches_defaults():
    assert load_config() == BuildSettings()


def test_config_file_overrides(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "settings:\n  striped_areas: true\n  detectors: false\n"
        "geometry:\n  wide_stripe_width_m: 0.5\n"
        "output:\n  indent: null\n",
        encoding="utf-8",
    )
    settings = load_config(path)

    assert settings.parser == ParserSettings(striped_areas=True, detectors=False)
    assert settings.geometry == GeometrySettings(wide_stripe_width=0.5)
    assert settings.output_indent is None


def test_empty_mapping_gives_defaults():
    assert settings_from_mapping(None) == BuildSettings()
    assert settings_from_mapping({}) == BuildSettings()


def test_geometry_values_must_be_numbers():
    with pytest.raises(TypeError, match="geometry.edge_stripe_gap_m must be a number"):
        settings_from_mapping({"geometry": {"edge_stripe_gap_m": "wide"}})
    with pytest.raises(ValueError, match="must not be negative"):
        settings_from_mapping({"geometry": {"edge_stripe_gap_m": -0.1}})


def test_sections_must_be_mappings():
    with pytest.raises(TypeError, match="geometry configuration must be a mapping"):
        settings_from_mapping({"geometry": [0.2]})
    with pytest.raises(TypeError, match="configuration root"):
        settings_from_mapping(["settings"])


def test_unknown_and_invalid_settings_are_rejected():
    with pytest.raises(ValueError, match="unknown settings: colour"):
        settings_from_mapping({"settings": {"colour": True}})
    with pytest.raises(TypeError, match="settings.demand must be a boolean"):
        settings_from_mapping({"settings": {"demand": "sometimes"}})


def test_with_striped_areas_keeps_other_settings():
    settings = BuildSettings(parser=ParserSettings(demand=False))
    enabled = settings.with_striped_areas(True)
    assert enabled.parser.striped_areas is True
    assert enabled.parser.demand is False
    assert settings.parser.striped_areas is False
