"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, wsctl.toml only contains overrides.
Most workspaces need no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from wsctl.domain.rules import DEFAULT_REQUIRED_SCRIPTS


class WorkspaceConfig(BaseModel):
    """[workspace] section."""

    model_config = {"frozen": True}

    # Root-relative directories whose workspaces dictate tool versions.
    config_prefixes: list[str] = Field(default_factory=lambda: ["configs"])


class EnforceConfig(BaseModel):
    """[enforce] section."""

    model_config = {"frozen": True}

    max_passes: int = Field(default=10, ge=1)
    disabled_rules: list[str] = Field(default_factory=list)


class ScriptsConfig(BaseModel):
    """[scripts] section.

    ``required`` maps script names to the placeholder written when a
    non-private workspace lacks them; ``{script}`` and ``{ident}`` are
    substituted.
    """

    model_config = {"frozen": True}

    required: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_REQUIRED_SCRIPTS))


class InstallConfig(BaseModel):
    """[install] section."""

    model_config = {"frozen": True}

    # Run after `check --fix` writes manifests; empty disables.
    command: str = ""


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    local_dir: str = ".wsctl/plugins"
