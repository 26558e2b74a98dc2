"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from portfolio_admin.exceptions import ConfigurationError
from portfolio_admin.models.config import ENV_OVERRIDES, AppConfig

log = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(
        self, config_file_path: Path, environ: Mapping[str, str] | None = None
    ):
        self.config_file_path = config_file_path
        self._environ = os.environ if environ is None else environ
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, overrides: dict[str, Any] | None = None) -> AppConfig:
        """
        Loads configuration from the INI file, then the environment, then overrides.

        Args:
            overrides: Values that take precedence over everything else.

        Returns:
            A validated AppConfig object.

        Raises:
            ConfigurationError: If the config file is invalid or validation fails.
        """
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
        else:
            log.debug(
                f"No configuration file at '{self.config_file_path}', "
                "using environment only."
            )

        config = self._get_config_as_dict()
        config.update(self._get_env_overrides())
        if overrides:
            config.update({k: v for k, v in overrides.items() if v is not None})

        try:
            config_dir = self.config_file_path.parent
            return AppConfig(**config, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def get_raw_config(self) -> dict[str, Any]:
        """Returns file and environment values merged, without validation."""
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e
        config = self._get_config_as_dict()
        config.update(self._get_env_overrides())
        return config

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save.
        """
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}

        defaults = self._defaults()
        for key in sorted(AppConfig.get_ini_keys()):
            value = settings.get(key, defaults.get(key))
            if value is not None:
                config["DEFAULT"][key] = str(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        try:
            timeout = section.getint("request_timeout", DEFAULT_REQUEST_TIMEOUT)
        except ValueError as e:
            raise ConfigurationError(f"request_timeout must be a number: {e}") from e
        return {
            "store_url": section.get("store_url", ""),
            "store_key": section.get("store_key", ""),
            "request_timeout": timeout,
            "mail_service_id": section.get("mail_service_id", ""),
            "mail_template_id": section.get("mail_template_id", ""),
            "mail_public_key": section.get("mail_public_key", ""),
        }

    def _get_env_overrides(self) -> dict[str, Any]:
        """Collects values set through PORTFOLIO_* environment variables."""
        found = {}
        for key, env_name in ENV_OVERRIDES.items():
            value = self._environ.get(env_name)
            if value:
                found[key] = value
                log.debug(f"Using {env_name} from the environment.")
        return found

    @staticmethod
    def _defaults() -> dict[str, Any]:
        return {
            "store_url": "",
            "store_key": "",
            "request_timeout": DEFAULT_REQUEST_TIMEOUT,
            "mail_service_id": "",
            "mail_template_id": "",
            "mail_public_key": "",
        }

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = self._defaults()
        needs_saving = False

        config_section = self._parser["DEFAULT"]

        for key in sorted(AppConfig.get_ini_keys()):
            if key not in config_section:
                config_section[key] = str(defaults[key])
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
