"""
Unit tests for configuration loading and validation
"""

import json

import pytest

from gsheets2img.config import (
    EXPORT_URL_TEMPLATE, default_configuration, load_configuration,
    merge_configuration, selection_criteria, validate_configuration
)
from gsheets2img.core.exceptions import ConfigurationError


class TestDefaultConfiguration:
    """Test environment-derived defaults"""

    def test_defaults(self):
        config = default_configuration()

        assert config["sheet"]["sheet_id"] is None
        assert config["sheet"]["export_url_template"] == EXPORT_URL_TEMPLATE
        assert config["sheet"]["include_sheets"] is None
        assert config["render"]["browser"] == "firefox"
        assert config["render"]["headless"] is True
        assert config["paths"]["output_dir"] == "./output"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("GSHEETS2IMG_SHEET_ID", "sheet-1")
        monkeypatch.setenv("GSHEETS2IMG_INCLUDE_SHEETS", "Budget, Actuals ,")
        monkeypatch.setenv("GSHEETS2IMG_EXCLUDE_SHEETS", "  ")
        monkeypatch.setenv("GSHEETS2IMG_CONCURRENCY", "8")
        monkeypatch.setenv("GSHEETS2IMG_HEADLESS", "false")

        config = load_configuration()

        assert config["sheet"]["sheet_id"] == "sheet-1"
        assert config["sheet"]["include_sheets"] == ["Budget", "Actuals"]
        assert config["sheet"]["exclude_sheets"] is None
        assert config["render"]["concurrency"] == 8
        assert config["render"]["headless"] is False


class TestLoadConfiguration:
    """Test layering of file and overrides"""

    def test_overrides_take_precedence(self, monkeypatch):
        monkeypatch.setenv("GSHEETS2IMG_SHEET_ID", "from-env")

        config = load_configuration(overrides={
            "sheet": {"sheet_id": "from-cli", "exclude_sheets": "Scratch"},
            "render": {"concurrency": 2, "browser": None},
        })

        assert config["sheet"]["sheet_id"] == "from-cli"
        assert config["sheet"]["exclude_sheets"] == ["Scratch"]
        assert config["render"]["concurrency"] == 2
        assert config["render"]["browser"] == "firefox"

    def test_json_file_is_merged(self, tmp_path):
        config_path = tmp_path / "gsheets2img.json"
        config_path.write_text(json.dumps({
            "sheet": {"sheet_id": "from-file", "include_sheets": ["A", "C"], "exclude_sheets": ["C"]},
            "render": {"concurrency": 3, "image_extension": "png"},
            "paths": {"output_dir": str(tmp_path / "images")},
        }))

        config = load_configuration(str(config_path))

        assert config["sheet"]["sheet_id"] == "from-file"
        assert config["render"]["concurrency"] == 3
        assert config["render"]["image_extension"] == ".png"
        # Untouched keys keep their defaults
        assert config["render"]["device_scale_factor"] == 2.0
        assert config["logging"]["level"] == "INFO"

        criteria = selection_criteria(config)
        assert criteria.include == ["A", "C"]
        assert criteria.exclude == ["C"]

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_configuration(str(tmp_path / "missing.json"), overrides={"sheet": {"sheet_id": "x"}})

    def test_invalid_json_raises(self, tmp_path):
        config_path = tmp_path / "broken.json"
        config_path.write_text("{not json")

        with pytest.raises(ConfigurationError) as exc_info:
            load_configuration(str(config_path))
        assert exc_info.value.error_code == "invalid_config_file"


class TestValidateConfiguration:
    """Test validation rules"""

    def base_config(self, **render):
        config = default_configuration()
        config["sheet"]["sheet_id"] = "sheet-1"
        config["render"].update(render)
        return config

    def test_missing_sheet_id(self):
        with pytest.raises(ConfigurationError) as exc_info:
            validate_configuration(default_configuration())
        assert exc_info.value.error_code == "missing_sheet_id"

    @pytest.mark.parametrize("concurrency", [0, -3, "0"])
    def test_non_positive_concurrency_is_rejected(self, concurrency):
        with pytest.raises(ConfigurationError) as exc_info:
            validate_configuration(self.base_config(concurrency=concurrency))
        assert exc_info.value.error_code == "invalid_concurrency"

    @pytest.mark.parametrize("concurrency", ["many", None, "2.5", True])
    def test_non_integer_concurrency_is_rejected(self, concurrency):
        with pytest.raises(ConfigurationError):
            validate_configuration(self.base_config(concurrency=concurrency))

    def test_unknown_browser(self):
        with pytest.raises(ConfigurationError) as exc_info:
            validate_configuration(self.base_config(browser="netscape"))
        assert exc_info.value.error_code == "unsupported_browser"

    def test_browser_name_is_normalised(self):
        assert validate_configuration(self.base_config(browser="Chromium"))["render"]["browser"] == "chromium"

    @pytest.mark.parametrize("value", ["False", "no", "off", "0", False, 0])
    def test_headless_can_be_disabled_from_file_values(self, value):
        assert validate_configuration(self.base_config(headless=value))["render"]["headless"] is False

    @pytest.mark.parametrize("value", ["True", "yes", "ON", "1", True, 1])
    def test_headless_truthy_values(self, value):
        assert validate_configuration(self.base_config(headless=value))["render"]["headless"] is True

    @pytest.mark.parametrize("value", ["no", "OFF", "False"])
    def test_headless_env_and_file_agree(self, monkeypatch, value):
        monkeypatch.setenv("GSHEETS2IMG_HEADLESS", value)
        from_env = load_configuration(overrides={"sheet": {"sheet_id": "x"}})
        from_overrides = load_configuration(overrides={"sheet": {"sheet_id": "x"}, "render": {"headless": value}})

        assert from_env["render"]["headless"] is False
        assert from_overrides["render"]["headless"] is False

    def test_unsupported_image_extension(self):
        with pytest.raises(ConfigurationError):
            validate_configuration(self.base_config(image_extension=".gif"))

    def test_negative_navigation_timeout(self):
        with pytest.raises(ConfigurationError):
            validate_configuration(self.base_config(navigation_timeout_ms=-1))

    def test_unknown_log_level(self):
        config = self.base_config()
        config["logging"]["level"] = "chatty"
        with pytest.raises(ConfigurationError):
            validate_configuration(config)

    def test_export_url_needs_placeholder(self):
        config = self.base_config()
        config["sheet"]["export_url_template"] = "https://example.com/export.zip"
        with pytest.raises(ConfigurationError):
            validate_configuration(config)


class TestMergeConfiguration:
    """Test merge_configuration"""

    def test_merges_per_section_and_skips_none(self):
        base = {"render": {"concurrency": 4, "browser": "firefox"}, "paths": {"output_dir": "out"}}
        merged = merge_configuration(base, {"render": {"concurrency": 1, "browser": None}})

        assert merged == {"render": {"concurrency": 1, "browser": "firefox"}, "paths": {"output_dir": "out"}}
        assert base["render"]["concurrency"] == 4
