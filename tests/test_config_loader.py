"""Tests for configuration loader and validator."""

import logging
from pathlib import Path
from typing import Any, Dict

import pytest
import yaml

from static_deploy.utils.config_loader import (
    build_run_config,
    get_config_example,
    load_config,
    merge_layers,
    validate_config,
)
from static_deploy.utils.errors import ConfigError, ConfigurationError


def valid_config(**overrides: Any) -> Dict[str, Any]:
    config: Dict[str, Any] = {
        "storage": {
            "region": "us-east-1",
            "bucket": "my-site",
            "accessKeyId": "id",
            "accessKeySecret": "secret",
        }
    }
    config.update(overrides)
    return config


def fields(errors):
    return [e.field for e in errors]


class TestConfigLoader:
    """Tests for load_config function."""

    def test_load_valid_yaml(self, tmp_path: Path):
        """Test loading valid YAML configuration."""
        config_file = tmp_path / ".deploy.yaml"
        config_file.write_text(
            """
publicDir: build
pathPrefix: /v1/
rules:
  - pattern: ^index\\.html$
    headers:
      - "Cache-Control: no-cache"
storage:
  bucket: my-site
"""
        )

        config = load_config(config_file)
        assert config["publicDir"] == "build"
        assert config["pathPrefix"] == "/v1/"
        assert config["rules"][0]["pattern"] == r"^index\.html$"
        assert config["storage"]["bucket"] == "my-site"

    def test_load_nonexistent_file(self):
        """Test loading non-existent file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config("nonexistent.yaml")

    def test_load_empty_file(self, tmp_path: Path):
        """Test loading empty file gives an empty layer."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert load_config(config_file) == {}

    def test_load_invalid_yaml(self, tmp_path: Path):
        """Test loading malformed YAML raises YAMLError."""
        config_file = tmp_path / "invalid.yaml"
        config_file.write_text("publicDir: [unclosed bracket\n")

        with pytest.raises(yaml.YAMLError):
            load_config(config_file)

    def test_load_non_mapping(self, tmp_path: Path):
        """Test a YAML list is rejected."""
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="mapping"):
            load_config(config_file)

    def test_load_directory_raises_error(self, tmp_path: Path):
        """Test loading directory path raises ValueError."""
        with pytest.raises(ValueError, match="not a file"):
            load_config(tmp_path)

    def test_secret_not_logged_at_debug(self, tmp_path: Path, caplog):
        """Test loading at DEBUG never writes the access key secret to the log."""
        config_file = tmp_path / ".deploy.yaml"
        config_file.write_text("storage:\n  accessKeyId: id\n  accessKeySecret: TOPSECRET\n")

        with caplog.at_level(logging.DEBUG):
            config = load_config(config_file)

        assert config["storage"]["accessKeySecret"] == "TOPSECRET"
        assert "EXIT load_config -> dict" in caplog.text
        assert "TOPSECRET" not in caplog.text


class TestMergeLayers:
    """Tests for merge_layers function."""

    def test_later_layer_wins(self):
        """Test the last layer wins for scalar keys."""
        merged = merge_layers({"publicDir": "env"}, {"publicDir": "file"}, {"publicDir": "cli"})
        assert merged["publicDir"] == "cli"

    def test_storage_merged_per_key(self):
        """Test storage settings merge key by key across layers."""
        merged = merge_layers(
            {"storage": {"accessKeyId": "env-id", "accessKeySecret": "env-secret"}},
            {"storage": {"bucket": "file-bucket", "region": "r"}},
            {"storage": {"bucket": "cli-bucket"}},
        )

        assert merged["storage"] == {
            "accessKeyId": "env-id",
            "accessKeySecret": "env-secret",
            "bucket": "cli-bucket",
            "region": "r",
        }

    def test_lists_replaced_whole(self):
        """Test lists are replaced, not concatenated."""
        merged = merge_layers({"stableAssetExts": ["js", "css"]}, {"stableAssetExts": ["png"]})
        assert merged["stableAssetExts"] == ["png"]

    def test_empty_layers_skipped(self):
        """Test empty and None layers are ignored."""
        assert merge_layers({}, None, {"chunkSize": 3}) == {"chunkSize": 3}

    def test_inputs_not_mutated(self):
        """Test merging leaves the input layers unchanged."""
        base = {"storage": {"bucket": "a"}}
        merge_layers(base, {"storage": {"bucket": "b"}})
        assert base == {"storage": {"bucket": "a"}}


class TestConfigValidation:
    """Tests for validate_config function."""

    def test_valid_minimal_config(self):
        """Test storage settings alone are a valid config."""
        assert validate_config(valid_config()) == []

    def test_missing_storage(self):
        """Test a config without storage is rejected."""
        errors = validate_config({})
        assert fields(errors) == ["storage"]

    def test_missing_storage_fields(self):
        """Test each missing storage field is reported."""
        errors = validate_config({"storage": {"bucket": "b"}})

        assert fields(errors) == [
            "storage.region",
            "storage.accessKeyId",
            "storage.accessKeySecret",
        ]

    def test_empty_storage_field(self):
        """Test an empty storage value counts as missing."""
        config = valid_config()
        config["storage"]["accessKeySecret"] = ""

        assert fields(validate_config(config)) == ["storage.accessKeySecret"]

    @pytest.mark.parametrize("prefix", ["site", "/site", "site/", ""])
    def test_invalid_path_prefix(self, prefix):
        """Test prefixes without both slashes are rejected."""
        errors = validate_config(valid_config(pathPrefix=prefix))
        assert fields(errors) == ["pathPrefix"]

    @pytest.mark.parametrize("prefix", ["/", "/v1/", "/a/b/"])
    def test_valid_path_prefix(self, prefix):
        """Test well-formed prefixes are accepted."""
        assert validate_config(valid_config(pathPrefix=prefix)) == []

    @pytest.mark.parametrize("chunk_size", [0, -1, "5", True, 1.5])
    def test_invalid_chunk_size(self, chunk_size):
        """Test chunk size must be a positive integer."""
        errors = validate_config(valid_config(chunkSize=chunk_size))
        assert fields(errors) == ["chunkSize"]

    def test_stable_asset_exts_must_be_list(self):
        """Test a comma string is not accepted as an extension list."""
        errors = validate_config(valid_config(stableAssetExts="js,css"))
        assert fields(errors) == ["stableAssetExts"]

    def test_invalid_rule_pattern(self):
        """Test a rule pattern that does not compile is reported."""
        errors = validate_config(valid_config(rules=[{"pattern": "([", "headers": []}]))
        assert fields(errors) == ["rules[0].pattern"]
        assert "regular expression" in str(errors[0])

    def test_rule_missing_pattern(self):
        """Test a rule needs a pattern."""
        errors = validate_config(valid_config(rules=[{"headers": ["A: b"]}]))
        assert fields(errors) == ["rules[0].pattern"]

    def test_invalid_rule_headers(self):
        """Test malformed header lines are reported by index."""
        errors = validate_config(
            valid_config(rules=[{"pattern": "x", "headers": ["no-colon", ": empty-name", "Ok: 1"]}])
        )
        assert fields(errors) == ["rules[0].headers[0]", "rules[0].headers[1]"]

    @pytest.mark.parametrize("endpoint", ["localhost:9000", "ftp://host", "http://", "https"])
    def test_invalid_endpoint(self, endpoint):
        """Test the storage endpoint must be an http(s) URL with a host."""
        config = valid_config()
        config["storage"]["endpoint"] = endpoint

        assert fields(validate_config(config)) == ["storage.endpoint"]

    def test_valid_endpoint(self):
        """Test an S3-compatible endpoint URL is accepted."""
        config = valid_config()
        config["storage"]["endpoint"] = "https://oss-cn-hangzhou.aliyuncs.com"

        assert validate_config(config) == []

    def test_boolean_flags(self):
        """Test boolean options reject strings."""
        errors = validate_config(valid_config(includeDotFiles="yes", failOnProbeError=True))
        assert fields(errors) == ["includeDotFiles"]

    def test_unknown_field_only_warns(self, caplog):
        """Test unknown keys are logged but allowed."""
        assert validate_config(valid_config(bucket="typo")) == []
        assert "bucket" in caplog.text

    def test_multiple_errors_reported(self):
        """Test all errors are collected in one pass."""
        errors = validate_config({"pathPrefix": "x", "chunkSize": 0})
        assert len(errors) == 3


class TestBuildRunConfig:
    """Tests for build_run_config function."""

    def test_defaults_applied(self):
        """Test defaults fill in options the layers leave out."""
        config = build_run_config(valid_config())

        assert config.public_dir == "dist"
        assert config.path_prefix == "/"
        assert config.chunk_size == 20
        assert "js" in config.stable_asset_exts
        assert config.storage.bucket == "my-site"
        assert config.storage.endpoint_url is None

    def test_values_and_rules(self):
        """Test given values and rules reach RunConfig."""
        config = build_run_config(
            valid_config(
                publicDir="build",
                pathPrefix="/v1/",
                stableAssetExts=[".woff2", "js"],
                chunkSize=4,
                rules=[{"pattern": r"\.html$", "headers": ["Cache-Control: no-cache"]}],
            ),
            dry_run=True,
        )

        assert config.public_dir == "build"
        assert config.stable_asset_exts == frozenset({"woff2", "js"})
        assert config.chunk_size == 4
        assert config.rules[0].pattern.search("index.html")
        assert config.rules[0].headers == ("Cache-Control: no-cache",)
        assert config.dry_run is True

    def test_invalid_config_raises(self):
        """Test validation errors raise ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            build_run_config({"pathPrefix": "x"})

        assert all(isinstance(e, ConfigError) for e in exc_info.value.errors)
        assert "Invalid configuration" in str(exc_info.value)


class TestConfigExample:
    def test_example_is_valid_yaml(self):
        """Test the example config parses and validates."""
        example = yaml.safe_load(get_config_example())

        assert validate_config(example) == []
        assert example["rules"][0]["pattern"] == r"^index\.html$"


class TestConfigError:
    def test_str_with_value(self):
        """Test ConfigError shows the offending value."""
        assert str(ConfigError("chunkSize", "Must be at least 1", 0)) == "chunkSize: Must be at least 1 (got: 0)"

    def test_str_without_value(self):
        """Test ConfigError without a value."""
        assert str(ConfigError("storage", "Missing required field")) == "storage: Missing required field"
