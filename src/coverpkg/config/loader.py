"""Layered configuration for coverpkg.

Later layers override earlier ones, section by section::

    built-in defaults
    ~/.config/coverpkg/config.yaml
    <repo>/.coverpkg.yaml
    COVERPKG__SECTION__KEY environment variables
    keyword arguments to load_config()

Both YAML files are merged before pydantic-settings sees them, so a repo file
only has to name the keys it changes.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import (
    BaseSettings,
    InitSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from coverpkg.config.models import (
    CollectConfig,
    CommentConfig,
    CoverPkgConfig,
    LoggingConfig,
    NotesConfig,
    ReportConfig,
)
from coverpkg.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/coverpkg/config.yaml").expanduser()
REPO_CONFIG_NAME = ".coverpkg.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    """Mapping from a YAML file; {} when the file is absent or empty."""
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = _deep_merge(current, value)
        merged[key] = value
    return merged


class _Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="COVERPKG__",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    logging: LoggingConfig = LoggingConfig()
    collect: CollectConfig = CollectConfig()
    report: ReportConfig = ReportConfig()
    notes: NotesConfig = NotesConfig()
    comment: CommentConfig = CommentConfig()


def _settings_with_files(file_values: dict[str, Any]) -> type[_Settings]:
    # A subclass per call keeps the file layer out of shared class state.
    class _FileLayeredSettings(_Settings):
        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            return (init_settings, env_settings, InitSettingsSource(settings_cls, init_kwargs=file_values))

    return _FileLayeredSettings


def load_config(repo_root: Path | None = None, **kwargs: Any) -> CoverPkgConfig:
    """Resolve the configuration for a repository.

    Args:
        repo_root: Directory holding ``.coverpkg.yaml``; the current
            directory if omitted.
        **kwargs: Section overrides, e.g. ``report={"group_by": "file"}``.

    Raises:
        ConfigError: A YAML file is malformed or a value fails validation.
    """
    root = repo_root or Path.cwd()
    file_values = _deep_merge(_load_yaml(GLOBAL_CONFIG_PATH), _load_yaml(root / REPO_CONFIG_NAME))

    try:
        settings = _settings_with_files(file_values)(**kwargs)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(part) for part in first["loc"])
        raise ConfigError.invalid_value(where, first.get("input"), first["msg"]) from e
    return CoverPkgConfig.model_validate(settings.model_dump())
