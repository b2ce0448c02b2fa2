"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs: CLI flags passed by Click
  2. Env vars: ``CARTCALC_*`` prefix, ``__`` for nested sections
  3. TOML file: ``cartcalc.toml`` discovered via walk-up
  4. Code defaults: baked into the section models
"""

from __future__ import annotations

import logging
import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from cartcalc.config.discovery import find_config
from cartcalc.config.models import CartcalcConfig, PricingConfig, RulesConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``cartcalc.toml`` file."""

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
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class CartcalcSettings(BaseSettings):
    """Settings for the cartcalc CLI, frozen after construction.

    Attributes:
        config_path: The TOML file that was loaded, or None.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "CARTCALC_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- Top-level TOML keys ---
    log_level: str = "WARNING"

    # --- TOML sections ---
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)

    @field_validator("log_level", mode="before")
    @classmethod
    def _level_name(cls, value: object) -> str:
        name = str(value).strip().upper()
        if name not in logging.getLevelNamesMapping():
            msg = f"Unknown log level: {value!r}"
            raise ValueError(msg)
        return name

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the TOML source between env vars and defaults."""
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
        cwd: Path | None = None,
        **cli_flags: Any,
    ) -> CartcalcSettings:
        """Construct settings from a CLI invocation.

        An explicit *config_path* that does not exist is an error; without
        one, ``cartcalc.toml`` is discovered from *cwd*.
        """
        toml_path: Path | None
        if config_path:
            toml_path = Path(config_path)
            if not toml_path.is_file():
                msg = f"Config file not found: {config_path}"
                raise click.ClickException(msg)
        else:
            toml_path = find_config(cwd)

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None

    def to_config(self) -> CartcalcConfig:
        """The TOML-shaped view consumed by services."""
        return CartcalcConfig(pricing=self.pricing, rules=self.rules)
