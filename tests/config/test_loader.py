"""Tests for PipelineConfig loading and validation."""

import pytest
import yaml

from clinic_config.loader import build_config, load_pipeline_config
from clinic_config.schema import PipelineConfig
from clinic_kernel.exceptions import ConfigurationError


@pytest.fixture
def config_file(tmp_path):
    def _write(data) -> str:
        path = tmp_path / "scraper.yaml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return str(path)

    return _write


class TestDefaults:
    def test_no_file_no_env(self):
        config = load_pipeline_config(env={})
        assert config == PipelineConfig()
        assert config.challenge_timeout_ms == 120_000
        assert config.challenge_recheck_timeout_ms == 20_000
        assert config.batch_limit == 5
        assert config.use_proxy is False


class TestYaml:
    def test_pipeline_section_applied(self, config_file):
        path = config_file({"pipeline": {"batch_limit": 3, "headless": False, "timezone": "UTC"}})

        config = load_pipeline_config(path, env={})

        assert config.batch_limit == 3
        assert config.headless is False
        assert config.timezone == "UTC"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_pipeline_config(path, env={}) == PipelineConfig()

    def test_unknown_key_rejected(self, config_file):
        path = config_file({"pipeline": {"batch_limt": 3}})
        with pytest.raises(ConfigurationError) as exc_info:
            load_pipeline_config(path, env={})
        assert exc_info.value.key == "batch_limt"

    def test_non_mapping_rejected(self, config_file):
        with pytest.raises(ConfigurationError):
            load_pipeline_config(config_file(["a", "b"]), env={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_pipeline_config(tmp_path / "absent.yaml", env={})


class TestEnvironment:
    def test_env_overrides_yaml(self, config_file):
        path = config_file({"pipeline": {"batch_limit": 3, "challenge_timeout_ms": 60_000}})

        config = load_pipeline_config(
            path,
            env={"PROCESS_LIMIT": "8", "SCRAPER_CHALLENGE_TIMEOUT_MS": "90000"},
        )

        assert config.batch_limit == 8
        assert config.challenge_timeout_ms == 90_000

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("no", False), ("OFF", False)])
    def test_boolean_parsing(self, raw, expected):
        env = {"USE_PROXY": raw, "PROXY_SERVER": "http://proxy.internal:3128"}
        assert load_pipeline_config(env=env).use_proxy is expected

    def test_blank_env_value_ignored(self):
        assert load_pipeline_config(env={"PROCESS_LIMIT": ""}).batch_limit == 5

    def test_bad_integer(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_pipeline_config(env={"PROCESS_LIMIT": "lots"})
        assert exc_info.value.key == "batch_limit"

    def test_bad_boolean(self):
        with pytest.raises(ConfigurationError):
            load_pipeline_config(env={"SCRAPER_HEADLESS": "maybe"})


class TestValidation:
    def test_proxy_requires_server(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_config({"use_proxy": True})
        assert exc_info.value.key == "proxy_server"

    def test_limit_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            build_config({"batch_limit": 0})

    def test_poll_bounds_ordered(self):
        with pytest.raises(ConfigurationError):
            build_config({"challenge_poll_min_ms": 3_000, "challenge_poll_max_ms": 2_000})

    def test_integer_field_rejects_boolean(self):
        with pytest.raises(ConfigurationError):
            build_config({"batch_limit": True})

    def test_optional_string_accepts_none(self):
        assert build_config({"diagnostics_dir": None}).diagnostics_dir is None

    @pytest.mark.parametrize("key", ["batch_limit", "headless", "timezone"])
    def test_null_rejected_for_required_field(self, config_file, key):
        path = config_file({"pipeline": {key: None}})
        with pytest.raises(ConfigurationError) as exc_info:
            load_pipeline_config(path, env={})
        assert exc_info.value.key == key
