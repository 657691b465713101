import os
import re
from configparser import ConfigParser, NoOptionError, NoSectionError
from typing import Any, Dict, List, Optional

APP_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_FILE = os.path.join(APP_DIR, 'config.ini')
MODELS_FILE = os.path.join(APP_DIR, 'models.ini')

_TRUE = ('true', 'yes')
_FALSE = ('false', 'no')
_LIST_ITEM = re.compile(r'<[^>]+>|[^,\s]+')


class ConfigManager:
    """
    Reads config.ini and models.ini once (plus the user's override files) and
    hands out SessionConfig objects that layer runtime overrides on top.
    """

    def __init__(self, config_file: Optional[str] = None):
        self.base_config = self._read_layers(CONFIG_FILE, 'user_config', config_file)
        self.models = self._read_layers(MODELS_FILE, 'user_models')

    def _read_layers(self, bundled: str, user_key: str, custom: Optional[str] = None) -> ConfigParser:
        """
        Bundled file first, then the user file named in [DEFAULT], then an
        explicit custom file. Later files win.
        """
        if not os.path.isfile(bundled):
            raise FileNotFoundError(f'Could not find the bundled file at {bundled}')

        parser = ConfigParser()
        parser.read(bundled)

        # config.ini names the user files for both parsers
        defaults = parser if user_key == 'user_config' else self.base_config
        user_file = self.resolve_file_path(defaults['DEFAULT'].get(user_key))
        if user_file is not None:
            parser.read(user_file)

        if custom is not None:
            path = self.resolve_file_path(custom)
            if path is None:
                raise FileNotFoundError(f'Could not find the custom config file at {custom}')
            parser.read(path)
        return parser

    def create_session_config(self, overrides: Optional[Dict[str, Any]] = None) -> 'SessionConfig':
        """Create a mutable session-specific config"""
        overrides = dict(overrides or {})
        config = SessionConfig(self.base_config, self.models, overrides)
        if overrides.get('model'):
            section = config.normalize_model_name(overrides['model'])
            if section:
                config.set_option('model', section)
        return config

    def provider_active(self, provider: Optional[str]) -> bool:
        if not provider:
            return False
        return self.base_config.getboolean(provider, 'active', fallback=False)

    def list_models(self, active_only: bool = True) -> Dict[str, Dict[str, Any]]:
        """Models keyed by section; the configured default carries default=True"""
        default_model = self.base_config['DEFAULT'].get('default_model')
        listed = {}
        for section in self.models.sections():
            data = {key: self.fix_values(raw) for key, raw in self.models.items(section)}
            if active_only and not self.provider_active(data.get('provider')):
                continue
            if section == default_model:
                data['default'] = True
            listed[section] = data
        return listed

    @staticmethod
    def fix_values(value: Any) -> Any:
        """
        Turn an INI string into the value it stands for: int, bool, list,
        unquoted string or user-expanded path. Non-strings pass through.
        """
        if not isinstance(value, str):
            return value
        text = value.strip()

        if text.startswith('[') and text.endswith(']'):
            return [ConfigManager.fix_values(item) for item in _LIST_ITEM.findall(text[1:-1])]
        if text.isdigit():
            return int(text)
        if text.lower() in _TRUE:
            return True
        if text.lower() in _FALSE:
            return False
        if len(text) >= 2 and text[0] == text[-1] and text[0] in ('"', "'"):
            return text[1:-1]
        if text.startswith('~'):
            return os.path.expanduser(text)
        return text

    @staticmethod
    def resolve_file_path(file_name: Optional[str], base_dir: Optional[str] = None) -> Optional[str]:
        """
        Absolute path of an existing file, or None.
        Relative names resolve against base_dir (default: the working directory).
        """
        if not file_name:
            return None
        path = os.path.expanduser(file_name)
        if not os.path.isabs(path):
            path = os.path.join(os.path.expanduser(base_dir or os.getcwd()), path)
        return os.path.abspath(path) if os.path.isfile(path) else None


class SessionConfig:
    """
    Mutable configuration for one session.
    Params merge [DEFAULT] -> [Provider] -> model section -> overrides.
    """

    def __init__(self, base_config: ConfigParser, models: ConfigParser, overrides: Optional[Dict[str, Any]] = None):
        self.base_config = base_config
        self.models = models
        self.overrides = overrides or {}
        self._cache: Optional[Dict[str, Any]] = None

    @property
    def model(self) -> Optional[str]:
        return self.overrides.get('model') or self.base_config['DEFAULT'].get('default_model')

    def get_params(self) -> Dict[str, Any]:
        """Get merged parameters for current model/provider"""
        if self._cache is not None:
            return self._cache

        params = {key: ConfigManager.fix_values(raw) for key, raw in self.base_config['DEFAULT'].items()}
        model = self.model
        section = self._find_model_section(model) if model else None
        if section is not None:
            model_options = self.get_model_options(section)
            provider = model_options.get('provider')
            if provider:
                params.update(self.get_all_options_from_section(provider))
                params['provider'] = provider
            params.update(model_options)
        params.update(self.overrides)
        if model:
            params['model'] = section or model

        self._cache = params
        return params

    def set_option(self, key: str, value: Any) -> None:
        """Set a runtime override"""
        self.overrides[key] = value
        self._cache = None

    def get_option(self, section: str, option: str, fallback: Any = None) -> Any:
        """
        Get a setting from the configuration

        :param section: the section to get the setting from
        :param option: the option to get
        :param fallback: the value to return if the option is not found
        :return: the setting value
        """
        if option in self.overrides:
            return self.overrides[option]
        try:
            return ConfigManager.fix_values(self.base_config.get(section, option))
        except (NoSectionError, NoOptionError):
            if section == 'DEFAULT':
                return self.get_params().get(option, fallback)
            return fallback

    def _find_model_section(self, model: str) -> Optional[str]:
        # Section name first, then the vendor model id
        if self.models.has_section(model):
            return model
        for section in self.models.sections():
            if self.models.get(section, 'model_name', fallback=None) == model:
                return section
        return None

    def valid_model(self, model: str) -> bool:
        return self._find_model_section(model) is not None

    def normalize_model_name(self, model: str) -> Optional[str]:
        """Section name for a section name or vendor model id; None when unknown"""
        return self._find_model_section(model)

    def model_sections(self) -> List[str]:
        return self.models.sections()

    def get_model_options(self, section: str) -> Dict[str, Any]:
        if not self.models.has_section(section):
            return {}
        return {key: ConfigManager.fix_values(raw) for key, raw in self.models.items(section)}

    def get_all_options_from_section(self, section: str) -> Dict[str, Any]:
        if not self.base_config.has_section(section):
            return {}
        return {key: ConfigManager.fix_values(raw) for key, raw in self.base_config.items(section)}
