"""Configuration loading from environment variables and strata.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

from strata.paths import AGENT_DIR, Storage

_CONFIG_FILENAME = "strata.toml"
_TRUTHY = {"1", "true", "yes", "on"}

DEFAULT_CONTEXT_FILENAMES = ["STRATA.md", "AGENTS.md"]
IMPORT_FORMATS = ("flat", "tree")


class ConfigError(ValueError):
    """Raised when configuration values are out of range."""


def _flag(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass
class HostEnvironment:
    """Process facts the discovery pipeline needs, passed in explicitly."""

    home: Path = field(default_factory=Path.home)
    debug: bool = False
    is_test: bool = False

    @classmethod
    def detect(cls) -> HostEnvironment:
        home = os.getenv("STRATA_HOME")
        return cls(
            home=Path(home).expanduser() if home else Path.home(),
            debug=_flag(os.getenv("STRATA_DEBUG")),
            is_test=os.getenv("STRATA_ENV") == "test" or "PYTEST_CURRENT_TEST" in os.environ,
        )


@dataclass
class FileFilteringOptions:
    """Ignore rules applied to the downward context-file search.

    The defaults are the memory-discovery defaults: VCS ignore rules are not
    applied (a STRATA.md may live in an ignored folder), .strataignore is.
    """

    respect_git_ignore: bool = False
    respect_tool_ignore: bool = True
    custom_ignore_patterns: list[str] = field(default_factory=list)

    def merged(self, overrides: dict | None) -> FileFilteringOptions:
        """Return a copy with any keys from ``overrides`` applied on top."""
        overrides = overrides or {}
        return FileFilteringOptions(
            respect_git_ignore=bool(overrides.get("respect_git_ignore", self.respect_git_ignore)),
            respect_tool_ignore=bool(overrides.get("respect_tool_ignore", self.respect_tool_ignore)),
            custom_ignore_patterns=list(
                overrides.get("custom_ignore_patterns", self.custom_ignore_patterns)
            ),
        )


DEFAULT_MEMORY_FILE_FILTERING_OPTIONS = FileFilteringOptions()


@dataclass
class ContextConfig:
    """Context-file discovery settings."""

    agent_dir: str = AGENT_DIR
    filenames: list[str] = field(default_factory=lambda: list(DEFAULT_CONTEXT_FILENAMES))
    import_format: str = "tree"
    max_dirs: int = 200
    include_directories: list[Path] = field(default_factory=list)
    extension_paths: list[str] = field(default_factory=list)
    folder_trust: bool = True
    filtering: FileFilteringOptions = field(default_factory=FileFilteringOptions)


@dataclass
class SummaryConfig:
    """Session summary settings."""

    max_messages: int = 20
    timeout: float = 5.0
    model: str = "claude-haiku-4-5"
    max_tokens: int = 256


@dataclass
class StrataConfig:
    """Top-level Strata configuration."""

    env: HostEnvironment = field(default_factory=HostEnvironment)
    context: ContextConfig = field(default_factory=ContextConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    cwd: Path = field(default_factory=Path.cwd)
    log_level: str = "INFO"


def _validate(config: StrataConfig) -> None:
    if config.context.import_format not in IMPORT_FORMATS:
        raise ConfigError(
            f"import_format must be one of {IMPORT_FORMATS}, got {config.context.import_format!r}"
        )
    if config.context.max_dirs <= 0:
        raise ConfigError(f"max_dirs must be positive, got {config.context.max_dirs}")
    if config.summary.max_messages <= 0:
        raise ConfigError(f"max_messages must be positive, got {config.summary.max_messages}")
    if not config.context.filenames:
        raise ConfigError("at least one context filename is required")


def load_config(config_path: Path | None = None, cwd: Path | None = None) -> StrataConfig:
    """Load configuration from environment variables and optional strata.toml.

    Priority: environment variables > strata.toml > defaults.
    """
    env = HostEnvironment.detect()
    cwd = Path(os.path.abspath(cwd or Path.cwd()))

    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    else:
        # Search current dir, its .strata/ and ~/.strata/
        for candidate in [
            cwd / _CONFIG_FILENAME,
            Storage(cwd).workspace_settings_path,
            Storage.global_settings_path(env.home),
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text(encoding="utf-8"))
                break

    context_data = file_data.get("context", {})
    filtering_data = context_data.get("filtering", {})
    summary_data = file_data.get("summary", {})

    env_filenames = os.getenv("STRATA_CONTEXT_FILENAMES")
    filenames = (
        [name.strip() for name in env_filenames.split(",") if name.strip()]
        if env_filenames
        else list(context_data.get("filenames", DEFAULT_CONTEXT_FILENAMES))
    )

    config = StrataConfig(
        env=env,
        context=ContextConfig(
            agent_dir=context_data.get("agent_dir", AGENT_DIR),
            filenames=filenames,
            import_format=os.getenv(
                "STRATA_IMPORT_FORMAT", context_data.get("import_format", "tree")
            ),
            max_dirs=int(os.getenv("STRATA_MAX_DIRS", context_data.get("max_dirs", 200))),
            include_directories=[
                Path(os.path.abspath(cwd / Path(p).expanduser()))
                for p in context_data.get("include_directories", [])
            ],
            extension_paths=list(context_data.get("extension_paths", [])),
            folder_trust=_flag(
                os.getenv("STRATA_FOLDER_TRUST"), context_data.get("folder_trust", True)
            ),
            filtering=DEFAULT_MEMORY_FILE_FILTERING_OPTIONS.merged(filtering_data),
        ),
        summary=SummaryConfig(
            max_messages=int(summary_data.get("max_messages", 20)),
            timeout=float(os.getenv("STRATA_SUMMARY_TIMEOUT", summary_data.get("timeout", 5.0))),
            model=os.getenv("STRATA_SUMMARY_MODEL", summary_data.get("model", "claude-haiku-4-5")),
            max_tokens=int(summary_data.get("max_tokens", 256)),
        ),
        cwd=cwd,
        log_level=os.getenv("STRATA_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    _validate(config)
    return config
