import logging
import os
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

OPTION_NAMES = [
    'source',
    'output',
    'wait_for',
    'format',
    'margin',
    'orientation',
    'header_template',
    'footer_template',
    'timeout',
    'scale',
    'custom_css',
    'cookies',
    'user_agent',
    'print_background',
    'deadline',
]

DEFAULT_CONFIG_PATH = 'html2pdf.yaml'


def get_default_config() -> Dict[str, Any]:
    """Get default configuration values."""
    return {
        'html2pdf': {},
        'browser': {
            'chrome_path': None,
            'headless': True,
        },
        'logging': {
            'level': 'INFO',
            'log_to_file': False,
            'logs_dir': 'logs',
            'log_filename': 'html2pdf.log',
            'rotate_logs': True
        },
    }


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file with environment variable overrides."""
    # Load environment variables
    load_dotenv()

    config = get_default_config()
    config_path = config_path or DEFAULT_CONFIG_PATH

    try:
        if os.path.exists(config_path):
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f) or {}
            for section, values in file_config.items():
                if isinstance(values, dict) and isinstance(config.get(section), dict):
                    config[section].update(values)
                else:
                    config[section] = values
    except (OSError, yaml.YAMLError) as e:
        logging.warning(f"Could not load config from {config_path}: {e}")

    return apply_env_overrides(config)


def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides for non-conversion settings."""
    env_mappings = {
        'LOG_LEVEL': ('logging', 'level', str),
        'DEBUG_MODE': ('logging', 'level', lambda x: 'DEBUG' if x.lower() == 'true' else config['logging']['level']),
        'CHROME_PATH': ('browser', 'chrome_path', str),
    }

    for env_var, (section, key, converter) in env_mappings.items():
        value = os.getenv(env_var)
        if value is not None:
            try:
                config[section][key] = converter(value)
            except (ValueError, TypeError) as e:
                logging.warning(f"Invalid value for {env_var}: {value} - {e}")

    return config


def collect_inputs(cli_values: Mapping[str, Any],
                   environ: Optional[Mapping[str, str]] = None,
                   file_options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Resolve every option by precedence.

    Order: CI platform input (INPUT_<NAME>) > CLI flag > environment
    variable (<NAME>) > config file > unset (None).

    Args:
        cli_values: Values from command-line flags, None when not given
        environ: Environment mapping, defaults to os.environ
        file_options: The 'html2pdf' section of the YAML config

    Returns:
        Option name -> raw value, None for unset options
    """
    environ = os.environ if environ is None else environ
    file_options = file_options or {}
    inputs: Dict[str, Any] = {}

    for name in OPTION_NAMES:
        env_name = name.upper()
        platform_value = environ.get(f'INPUT_{env_name}')
        if platform_value:
            inputs[name] = platform_value
        elif cli_values.get(name) is not None:
            inputs[name] = cli_values[name]
        elif environ.get(env_name):
            inputs[name] = environ[env_name]
        elif file_options.get(name) is not None:
            inputs[name] = file_options[name]
        else:
            inputs[name] = None

    return inputs
