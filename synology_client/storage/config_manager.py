"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from synology_client.exceptions import ConfigurationError
from synology_client.models.config import ClientConfig

log = logging.getLogger(__name__)


class ConfigManager:
    """Handles all operations related to the client's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> ClientConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        Args:
            cli_options: A dictionary of options provided via the command line.
                ``None`` values are ignored.

        Returns:
            A validated ClientConfig object.

        Raises:
            ConfigurationError: If the config file is missing, invalid, or validation
            fails.
        """
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'synology-client init' first."
            )

        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if self._migrate_if_needed():
            log.info(
                "[yellow]Configuration file was updated with new default values."
                "[/yellow]"
            )

        try:
            config_from_file = self.get_config_as_dict()
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

        if cli_options:
            config_from_file.update(
                {k: v for k, v in cli_options.items() if v is not None}
            )

        try:
            config_dir = self.config_file_path.parent
            return ClientConfig(**config_from_file, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save. Must contain ``base_url``.
        """
        try:
            validated = ClientConfig(**settings)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}
        for key in sorted(ClientConfig.get_ini_keys()):
            config["DEFAULT"][key] = self._to_ini(getattr(validated, key))

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        defaults = ClientConfig.model_fields
        section = self._parser["DEFAULT"]
        return {
            "base_url": section.get("base_url", ""),
            "verify_ssl": section.getboolean(
                "verify_ssl", defaults["verify_ssl"].default
            ),
            "user_agent": section.get("user_agent", defaults["user_agent"].default),
            "max_connections": section.getint(
                "max_connections", defaults["max_connections"].default
            ),
            "timeout_total": section.getfloat(
                "timeout_total", defaults["timeout_total"].default
            ),
            "timeout_connect": section.getfloat(
                "timeout_connect", defaults["timeout_connect"].default
            ),
            "timeout_sock_read": section.getfloat(
                "timeout_sock_read", defaults["timeout_sock_read"].default
            ),
            "sid": section.get("sid", ""),
            "create_parents": section.getboolean(
                "create_parents", defaults["create_parents"].default
            ),
        }

    @staticmethod
    def _to_ini(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        config_section = self._parser["DEFAULT"]
        needs_saving = False

        for key in ClientConfig.get_ini_keys():
            field = ClientConfig.model_fields[key]
            if key in config_section or field.is_required():
                continue

            config_section[key] = self._to_ini(field.default)
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
