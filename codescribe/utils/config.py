"""Configuration loader for codescribe.

Loads settings from configs/config.yaml and provides typed access
to all configuration sections via dataclasses.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "configs" / "config.yaml"

DEFAULT_EXTENSIONS = [
    ".ts", ".tsx", ".js", ".jsx",
    ".py", ".go", ".rs", ".java",
    ".vue", ".svelte",
    ".css", ".scss", ".sass",
    ".html", ".md",
    ".json", ".yaml", ".yml",
]
DEFAULT_FILENAMES = ["package.json", "tsconfig.json", "next.config.js", "vercel.json"]
DEFAULT_DIRECTORIES = ["supabase", "prisma"]
DEFAULT_IGNORE_DIRECTORIES = ["node_modules", "dist", "build", ".git"]
DEFAULT_IGNORE_PATTERNS = [
    "*.min.js",
    "*.test.ts", "*.test.js",
    "*.spec.ts", "*.spec.js",
]


@dataclass
class APIConfig:
    """Configuration for the Anthropic API client."""

    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4000
    temperature: float = 0.3
    rate_limit_rpm: int = 50
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0


@dataclass
class AnalysisConfig:
    """Configuration for file discovery and the directory batcher.

    Attributes:
        batch_size: Number of directories analyzed concurrently.
        file_timeout: Seconds allowed per file, or None for no limit.
        include_extensions: File suffixes picked up by discovery.
        include_filenames: File names picked up regardless of suffix.
        include_directories: Directory names whose whole content is picked up.
        ignore_directories: Directory names skipped anywhere in the tree.
        ignore_patterns: Glob patterns matched against file names.
    """

    batch_size: int = 4
    file_timeout: Optional[float] = None
    include_extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    include_filenames: list[str] = field(default_factory=lambda: list(DEFAULT_FILENAMES))
    include_directories: list[str] = field(
        default_factory=lambda: list(DEFAULT_DIRECTORIES)
    )
    ignore_directories: list[str] = field(
        default_factory=lambda: list(DEFAULT_IGNORE_DIRECTORIES)
    )
    ignore_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS))


@dataclass
class ClassificationConfig:
    """Configuration for the workflow classification engine."""

    detectors: list[str] = field(default_factory=lambda: ["cli", "api", "webapp"])
    write_report: bool = True


@dataclass
class OutputConfig:
    """Configuration for documentation output."""

    default_format: str = "md"
    output_dir: str = "docs"


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass
class AppConfig:
    """Top-level application configuration."""

    api: APIConfig = field(default_factory=APIConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    classification: ClassificationConfig = field(default_factory=ClassificationConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _build_section(section_cls: type, name: str, data: Optional[dict[str, Any]]) -> Any:
    """Build one config dataclass from its YAML mapping.

    Keys missing from the mapping keep the dataclass defaults; unknown
    keys are logged and ignored.

    Args:
        section_cls: The dataclass type for the section.
        name: Section name, used in log messages.
        data: The raw mapping from the YAML file.

    Returns:
        An instance of ``section_cls``.
    """
    data = data or {}
    known = {f.name for f in fields(section_cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown keys in '%s' config: %s", name, ", ".join(unknown))
    return section_cls(**{key: value for key, value in data.items() if key in known})


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load application configuration from a YAML file.

    Falls back to defaults for any missing file, section, or value. The
    API key is read from the ANTHROPIC_API_KEY environment variable, not
    from the config file.

    Args:
        config_path: Path to the YAML config file. If None, uses the
            default path at configs/config.yaml.

    Returns:
        A fully populated AppConfig instance.

    Raises:
        yaml.YAMLError: If the config file contains invalid YAML.
    """
    path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.warning("Config file not found at %s, using defaults", path)
        return AppConfig()

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    logger.info("Loaded configuration from %s", path)

    if not os.getenv("ANTHROPIC_API_KEY"):
        logger.debug("ANTHROPIC_API_KEY not set in environment")

    return AppConfig(
        api=_build_section(APIConfig, "api", raw.get("api")),
        analysis=_build_section(AnalysisConfig, "analysis", raw.get("analysis")),
        classification=_build_section(
            ClassificationConfig, "classification", raw.get("classification")
        ),
        output=_build_section(OutputConfig, "output", raw.get("output")),
        logging=_build_section(LoggingConfig, "logging", raw.get("logging")),
    )
