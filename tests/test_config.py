"""Tests for configuration loading and validation."""

import logging
from pathlib import Path

import pytest
import yaml

from codescribe.utils.config import (
    AnalysisConfig,
    APIConfig,
    AppConfig,
    ClassificationConfig,
    LoggingConfig,
    OutputConfig,
    load_config,
)


class TestDefaults:
    """Tests for the dataclass defaults."""

    def test_api_defaults(self) -> None:
        config = APIConfig()
        assert config.max_tokens == 4000
        assert config.rate_limit_rpm == 50
        assert config.retry_max_attempts == 3

    def test_analysis_defaults(self) -> None:
        config = AnalysisConfig()
        assert config.batch_size == 4
        assert config.file_timeout is None
        assert ".tsx" in config.include_extensions
        assert "node_modules" in config.ignore_directories
        assert "*.min.js" in config.ignore_patterns

    def test_analysis_lists_are_independent(self) -> None:
        first = AnalysisConfig()
        first.include_extensions.append(".elm")
        assert ".elm" not in AnalysisConfig().include_extensions

    def test_classification_defaults(self) -> None:
        config = ClassificationConfig()
        assert config.detectors == ["cli", "api", "webapp"]
        assert config.write_report is True

    def test_app_config_sections(self) -> None:
        config = AppConfig()
        assert isinstance(config.api, APIConfig)
        assert isinstance(config.analysis, AnalysisConfig)
        assert isinstance(config.classification, ClassificationConfig)
        assert isinstance(config.output, OutputConfig)
        assert isinstance(config.logging, LoggingConfig)
        assert config.output.default_format == "md"
        assert config.output.output_dir == "docs"


class TestLoadConfig:
    """Tests for the load_config function."""

    def test_load_default_config(self) -> None:
        config = load_config()
        assert isinstance(config, AppConfig)
        assert config.analysis.batch_size == 4
        assert config.classification.detectors == ["cli", "api", "webapp"]

    def test_load_from_explicit_path(self, tmp_path: Path) -> None:
        config_data = {
            "api": {"max_tokens": 2048},
            "analysis": {"batch_size": 2, "file_timeout": 1.5},
            "classification": {"detectors": ["cli", "api", "webapp", "pages"]},
            "output": {"default_format": "html"},
            "logging": {"level": "DEBUG"},
        }
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump(config_data))

        config = load_config(str(config_file))
        assert config.api.max_tokens == 2048
        assert config.api.temperature == 0.3
        assert config.analysis.batch_size == 2
        assert config.analysis.file_timeout == 1.5
        assert config.classification.detectors[-1] == "pages"
        assert config.output.default_format == "html"
        assert config.logging.level == "DEBUG"

    def test_missing_file_returns_defaults(self, tmp_path: Path) -> None:
        config = load_config(str(tmp_path / "nonexistent.yaml"))
        assert config == AppConfig()

    def test_empty_file_returns_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        assert load_config(str(config_file)) == AppConfig()

    def test_unknown_keys_are_ignored(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"analysis": {"batch_size": 8, "turbo": True}}))

        with caplog.at_level(logging.WARNING, logger="codescribe"):
            config = load_config(str(config_file))

        assert config.analysis.batch_size == 8
        assert "turbo" in caplog.text

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "broken.yaml"
        config_file.write_text("api: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_config(str(config_file))
