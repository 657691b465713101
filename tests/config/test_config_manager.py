from __future__ import annotations

import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from config_manager import ConfigManager


def test_fix_values_normalises_strings():
    assert ConfigManager.fix_values(' 25 ') == 25
    assert ConfigManager.fix_values('true') is True
    assert ConfigManager.fix_values('No') is False
    assert ConfigManager.fix_values('"quoted"') == 'quoted'
    assert ConfigManager.fix_values('[a, b, c]') == ['a', 'b', 'c']
    assert ConfigManager.fix_values('~/x.db') == os.path.expanduser('~/x.db')
    assert ConfigManager.fix_values('monokai') == 'monokai'


def test_default_model_params_merge_provider_and_model():
    config = ConfigManager().create_session_config()
    params = config.get_params()
    assert params['model'] == 'deepseek-70b'
    assert params['provider'] == 'OpenRouter'
    assert params['model_name'] == 'deepseek/deepseek-r1-distill-llama-70b:free'
    assert params['base_url'] == 'https://openrouter.ai/api/v1'
    assert params['timeout'] == 60


def test_model_alias_normalises_to_section():
    manager = ConfigManager()
    config = manager.create_session_config({'model': 'gemini-2.0-flash'})
    assert config.get_params()['model'] == 'gemini-flash'
    assert config.get_params()['provider'] == 'Google'
    assert config.valid_model('mock') is True
    assert config.normalize_model_name('no-such-model') is None


def test_set_option_invalidates_cached_params():
    config = ConfigManager().create_session_config({'model': 'mock'})
    assert config.get_params()['provider'] == 'Mock'
    config.set_option('model', 'gemini-flash')
    assert config.get_params()['provider'] == 'Google'


def test_display_options_are_typed():
    config = ConfigManager().create_session_config()
    assert config.get_option('DISPLAY', 'typewriter') is True
    assert config.get_option('DISPLAY', 'step_chars') == 3
    assert config.get_option('DISPLAY', 'min_delay_ms') == 10
    assert config.get_option('DISPLAY', 'missing', fallback='x') == 'x'
    assert config.get_option('NOPE', 'missing', fallback=7) == 7


def test_custom_config_file_overrides(tmp_path):
    custom = tmp_path / 'custom.ini'
    custom.write_text('[DISPLAY]\ntypewriter = false\n\n[DEFAULT]\ndefault_model = mock\n')
    config = ConfigManager(str(custom)).create_session_config()
    assert config.get_option('DISPLAY', 'typewriter') is False
    assert config.get_params()['provider'] == 'Mock'


def test_missing_custom_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigManager(str(tmp_path / 'missing.ini'))


def test_list_models_marks_default(tmp_path):
    custom = tmp_path / 'custom.ini'
    custom.write_text('[Google]\nactive = false\n')
    manager = ConfigManager(str(custom))

    active = manager.list_models()
    assert 'gemini-flash' not in active
    assert active['deepseek-70b']['default'] is True
    assert 'default' not in active['mock']
    assert 'gemini-flash' in manager.list_models(active_only=False)
