"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``WSCTL_*`` prefix
  3. TOML file    — ``wsctl.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

The project root is the directory holding ``wsctl.toml``; without one it is
the nearest ancestor whose ``package.json`` declares ``workspaces``, falling
back to the working directory.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from wsctl.config.discovery import find_config, find_project_root
from wsctl.config.models import (
    EnforceConfig,
    InstallConfig,
    PluginsConfig,
    ScriptsConfig,
    WorkspaceConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``wsctl.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            try:
                self._data = tomllib.loads(toml_path.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for the TOML path during construction.
_tls = threading.local()


class WsSettings(BaseSettings):
    """Unified settings for the wsctl CLI.

    Attributes:
        root: Project root holding the root ``package.json``.
        config_path: The ``wsctl.toml`` in effect, if any.
        packages_version: Release version; switches ``check`` to version stamping.
        debug_requirements: Log aggregated peer requirements per workspace.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "WSCTL_",
        "env_nested_delimiter": "__",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    debug_requirements: bool = False
    packages_version: str | None = None

    # --- TOML sections ---
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    enforce: EnforceConfig = Field(default_factory=EnforceConfig)
    scripts: ScriptsConfig = Field(default_factory=ScriptsConfig)
    install: InstallConfig = Field(default_factory=InstallConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        **cli_flags: Any,
    ) -> WsSettings:
        """Construct settings from a CLI invocation.

        Flags left at None are dropped so env vars and TOML can supply them.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(root)

        resolved_root = root
        if resolved_root is None:
            if toml_path is not None:
                resolved_root = toml_path.parent
            else:
                resolved_root = find_project_root() or Path.cwd()

        overrides = {key: value for key, value in cli_flags.items() if value is not None}

        _tls.toml_path = toml_path
        try:
            return cls(root=resolved_root, config_path=toml_path, **overrides)
        finally:
            _tls.toml_path = None
