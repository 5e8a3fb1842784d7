"""
Tests for option resolution and cache keys.
"""

import pytest

from imageresize.config import ResizeFilter, Settings
from imageresize.pipeline.option_resolver import OptionResolver
from imageresize.storage.paths import cache_key


@pytest.fixture
def resolver(settings) -> OptionResolver:
    return OptionResolver(settings)


class TestDefaults:

    def test_defaults_merged(self, resolver, settings):
        resolved = resolver.resolve("/media/a.jpg")
        assert resolved.options == {
            "driver": "pillow",
            "mode": settings.DEFAULT_MODE,
            "quality": settings.DEFAULT_QUALITY,
            "format": "auto",
        }

    def test_explicit_values_beat_defaults(self, resolver):
        resolved = resolver.resolve("/media/a.jpg", options={"mode": "cover", "quality": 40})
        assert resolved.options["mode"] == "cover"
        assert resolved.options["quality"] == 40

    def test_width_height_arguments(self, resolver):
        resolved = resolver.resolve("/media/a.jpg", 200, 100)
        assert resolved.options["width"] == 200
        assert resolved.options["height"] == 100

    def test_non_positive_dimensions_dropped(self, resolver):
        resolved = resolver.resolve("/media/a.jpg", 0, -5)
        assert "width" not in resolved.options
        assert "height" not in resolved.options


class TestDeterminism:

    def test_same_inputs_same_key(self, resolver):
        first = resolver.resolve("/media/a.jpg", 200, None, {"blur": 5, "mode": "cover"})
        second = resolver.resolve("/media/a.jpg", 200, None, {"mode": "cover", "blur": 5})
        assert first.cache_key == second.cache_key

    def test_key_matches_hash_of_canonical_options(self, resolver):
        resolved = resolver.resolve("/media/a.jpg", 200)
        assert resolved.cache_key == cache_key("/media/a.jpg", resolved.options)

    def test_different_source_different_key(self, resolver):
        assert resolver.resolve("/media/a.jpg").cache_key != resolver.resolve("/media/b.jpg").cache_key

    def test_string_and_int_dimensions_share_key(self, resolver):
        assert (
            resolver.resolve("/media/a.jpg", options={"width": "200"}).cache_key
            == resolver.resolve("/media/a.jpg", options={"width": 200}).cache_key
        )


class TestAliases:

    @pytest.mark.parametrize("alias,canonical,value", [
        ("fill", "background", "#000"),
        ("grayscale", "greyscale", True),
        ("colourise", "colorize", "10,20,30"),
    ])
    def test_alias_moves_to_canonical_key(self, resolver, alias, canonical, value):
        resolved = resolver.resolve("/media/a.jpg", options={alias: value})
        assert resolved.options[canonical] == value
        assert alias not in resolved.options


class TestPresets:

    def test_low(self, resolver):
        options = resolver.resolve("/media/a.jpg", options={"preset": "low"}).options
        assert options["format"] == "jpg"
        assert options["quality"] == 50

    def test_medium(self, resolver):
        options = resolver.resolve("/media/a.jpg", options={"preset": "medium"}).options
        assert options["format"] == "jpg"
        assert options["quality"] == 80

    def test_high_drops_format(self, resolver):
        options = resolver.resolve("/media/a.jpg", options={"preset": "high", "format": "png"}).options
        assert options["quality"] == 100
        # Only the settings default remains
        assert options["format"] == "auto"

    @pytest.mark.parametrize("preset", [["low"], {"name": "low"}, "ultra"])
    def test_unusable_preset_ignored(self, resolver, settings, preset):
        options = resolver.resolve("/media/a.jpg", options={"preset": preset}).options
        assert options["quality"] == settings.DEFAULT_QUALITY
        assert options["format"] == settings.DEFAULT_FORMAT


class TestFilters:

    def test_filter_rules_applied(self, resolver):
        options = resolver.resolve("/media/a.jpg", options={"filter": "thumbnail"}).options
        assert options["max_width"] == 500
        assert options["max_height"] == 500
        assert options["greyscale"] is True
        assert options["quality"] == 60
        assert options["format"] == "jpg"
        assert options["mode"] == "cover"

    def test_explicit_override_beats_filter(self, resolver):
        resolved = resolver.resolve("/media/a.jpg", options={"filter": "thumbnail", "quality": 10})
        assert resolved.options["quality"] == 10
        assert resolved.overrides["quality"] == 10

    def test_width_argument_beats_filter(self, resolver):
        resolved = resolver.resolve("/media/a.jpg", 300, None, {"filter": "hero"})
        assert resolved.options["width"] == 300
        assert resolved.options["height"] == 500

    def test_unset_values_do_not_override(self, resolver):
        resolved = resolver.resolve(
            "/media/a.jpg", options={"filter": "thumbnail", "quality": 0, "mode": ""}
        )
        assert resolved.options["quality"] == 60
        assert resolved.options["mode"] == "cover"
        assert "quality" not in resolved.overrides

    def test_no_filter_no_overrides(self, resolver):
        assert resolver.resolve("/media/a.jpg", options={"quality": 10}).overrides == {}

    def test_unknown_filter_applies_nothing(self, resolver, settings):
        options = resolver.resolve("/media/a.jpg", options={"filter": "nope"}).options
        assert options["quality"] == settings.DEFAULT_QUALITY
        assert options["filter"] == "nope"

    def test_first_filter_with_code_wins(self, tmp_path):
        settings = Settings(
            _env_file=None,
            FILTERS=[
                ResizeFilter.model_validate(
                    {"code": "dup", "rules": [{"modifier": "quality", "value": "11"}]}
                ),
                ResizeFilter.model_validate(
                    {"code": "dup", "rules": [{"modifier": "quality", "value": "22"}]}
                ),
            ],
        )
        options = OptionResolver(settings).resolve("/a.jpg", options={"filter": "dup"}).options
        assert options["quality"] == 11


class TestCanonicalisation:

    def test_quality_out_of_range_defaults(self, resolver, settings):
        assert resolver.resolve("/a.jpg", options={"quality": 500}).options["quality"] == settings.DEFAULT_QUALITY
        assert resolver.resolve("/a.jpg", options={"quality": "abc"}).options["quality"] == settings.DEFAULT_QUALITY

    def test_unknown_mode_defaults(self, resolver, settings):
        assert resolver.resolve("/a.jpg", options={"mode": "zoom"}).options["mode"] == settings.DEFAULT_MODE

    def test_jpeg_normalised(self, resolver):
        assert resolver.resolve("/a.jpg", options={"format": "JPEG"}).options["format"] == "jpg"

    def test_unknown_format_defaults(self, resolver):
        assert resolver.resolve("/a.jpg", options={"format": "tiff"}).options["format"] == "auto"

    def test_unknown_fit_position_defaults_to_center(self, resolver):
        assert resolver.resolve("/a.jpg", options={"fit_position": "middle"}).options["fit_position"] == "center"

    def test_bool_coercion(self, resolver):
        options = resolver.resolve("/a.jpg", options={"upsize": "true", "cache": "0"}).options
        assert options["upsize"] is True
        assert options["cache"] is False

    def test_none_values_dropped(self, resolver):
        assert "blur" not in resolver.resolve("/a.jpg", options={"blur": None}).options

    def test_modifiers_carried_verbatim(self, resolver):
        assert resolver.resolve("/a.jpg", options={"blur": "abc"}).options["blur"] == "abc"
