import os
from configparser import ConfigParser, NoOptionError, NoSectionError
from typing import Dict, Any, Optional

FIELD_SECTION_PREFIX = 'FIELD.'

# Read from beside this module, so installs must be editable (pip install -e .)
DEFAULT_CONFIG_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config.ini')


class ConfigManager:
    """
    Reads the config files once and hands out session-specific configuration
    objects. Files are read in order: the bundled config.ini, the
    [DEFAULT] user_config file, then an optional custom file.
    """

    def __init__(self, config_file: Optional[str] = None):
        self.base_config = self._load_configs(config_file)

    def _load_configs(self, config_file: Optional[str] = None) -> ConfigParser:
        if not os.path.exists(DEFAULT_CONFIG_FILE):
            raise FileNotFoundError(
                f'Could not find the default config file at {DEFAULT_CONFIG_FILE}; '
                f'entreat must be run from a checkout or an editable install'
            )

        # Field validators are regular expressions, so no '%' interpolation
        config = ConfigParser(interpolation=None)
        config.read(DEFAULT_CONFIG_FILE)

        user_config = self.resolve_file_path(config['DEFAULT'].get('user_config', ''))
        if user_config is not None:
            config.read(user_config)

        if config_file is not None:
            file = self.resolve_file_path(config_file)
            if file is None:
                raise FileNotFoundError(f'Could not find the custom config file at {config_file}')
            config.read(file)

        return config

    def create_session_config(self, overrides: Optional[Dict[str, Any]] = None) -> 'SessionConfig':
        """Create a session-specific config"""
        return SessionConfig(self.base_config, dict(overrides or {}))

    def list_fields(self) -> Dict[str, Dict[str, str]]:
        """Raw option values of the [FIELD.<name>] sections, by field name"""
        return _field_sections(self.base_config)

    @staticmethod
    def fix_values(value: Any) -> Any:
        """Turn the strings ConfigParser returns into ints and booleans where they look like one"""
        if not isinstance(value, str):
            return value
        value = value.strip()
        if value.isdigit():
            return int(value)
        lower_value = value.lower()
        if lower_value in ('true', 'yes', 'on'):
            return True
        if lower_value in ('false', 'no', 'off'):
            return False
        if len(value) > 1 and value[0] == value[-1] and value[0] in ('"', "'"):
            return value[1:-1]
        return value

    @staticmethod
    def resolve_file_path(file_name: Optional[str]) -> Optional[str]:
        """
        Absolute path of an existing file, or None
        :param file_name: path, with ~ expanded; relative paths start at the working directory
        """
        if not file_name or not file_name.strip():
            return None
        path = os.path.abspath(os.path.expanduser(file_name.strip()))
        return path if os.path.isfile(path) else None


def _field_sections(config: ConfigParser) -> Dict[str, Dict[str, str]]:
    defaults = set(config.defaults())
    fields: Dict[str, Dict[str, str]] = {}
    for section in config.sections():
        if not section.startswith(FIELD_SECTION_PREFIX):
            continue
        name = section[len(FIELD_SECTION_PREFIX):].strip()
        if not name:
            continue
        # Values stay raw strings: defaults and patterns must not be coerced
        fields[name] = {
            option: config.get(section, option).strip()
            for option in config.options(section)
            if option not in defaults
        }
    return fields


class SessionConfig:
    """
    Configuration for one session: runtime overrides on top of the merged
    config files. Overrides are keyed by option name only.
    """

    def __init__(self, base_config: ConfigParser, overrides: Optional[Dict[str, Any]] = None):
        self.base_config = base_config
        self.overrides = overrides or {}

    def get_option(self, section: str, option: str, fallback: Any = None) -> Any:
        """
        Get a setting, normalized with ConfigManager.fix_values

        :param section: the section to get the setting from
        :param option: the option to get
        :param fallback: the value to return if the option is not found
        """
        if option in self.overrides:
            return self.overrides[option]
        try:
            return ConfigManager.fix_values(self.base_config.get(section, option))
        except (NoSectionError, NoOptionError):
            return fallback

    def get_raw_option(self, section: str, option: str, fallback: Optional[str] = None) -> Optional[str]:
        """Get a setting as written, for free-text values such as the prompt label"""
        if option in self.overrides:
            value = self.overrides[option]
            return None if value is None else str(value)
        try:
            return self.base_config.get(section, option)
        except (NoSectionError, NoOptionError):
            return fallback

    def list_fields(self) -> Dict[str, Dict[str, str]]:
        """Field definitions from the [FIELD.<name>] sections"""
        return _field_sections(self.base_config)
