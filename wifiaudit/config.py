"""
WiFiAudit Configuration
Loads the JSON configuration files under ./config and fills in defaults
"""

import copy
import json
import os
import logging
from typing import Dict, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'config')
INTERFACE_ENV_VAR = 'WIFI_INTERFACE'

DEFAULT_CONFIG = {
    'system': {
        'version': '1.0.0'
    },
    'wifi': {
        'interface': '',
        'interface_mac': '',
        'use_sudo': True
    },
    'paths': {
        'database': './data/wifi-scan-db.json',
        'captures_dir': './captures',
        'scan_dir': './scan_results',
        'log_dir': './logs'
    },
    'scan': {
        'default_duration': 60,
        'keep_scans': 5
    },
    'capture': {
        'duration': 60,
        'deauth_count': 5,
        'deauth_interval': 10,
        'max_targeted_clients': 3,
        'client_spacing': 2,
        'settle_time': 2,
        'startup_grace': 2,
        'stop_grace': 1,
        'verify_timeout': 30,
        'deauth_timeout': 30
    },
    'web': {
        'host': '0.0.0.0',
        'port': 8080
    },
    'debug': {
        'enabled': False,
        'mock_tools': False,
        'verbose_logging': False,
        'handshake_after': 2
    }
}


def _deep_merge(base: Dict, override: Dict) -> Dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def default_config_path(debug: bool = False) -> str:
    """Path of the bundled production or debug configuration"""
    return os.path.join(CONFIG_DIR, 'config.debug.json' if debug else 'config.json')


def load_config(config_path: Optional[str] = None, debug: bool = False) -> Dict:
    """Load configuration from a JSON file and merge it over the defaults

    The WIFI_INTERFACE environment variable overrides wifi.interface.
    """
    path = config_path or default_config_path(debug)
    logger.debug(f"Loading configuration from {path}")

    try:
        with open(path, 'r') as f:
            user_config = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}")
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Could not read configuration {path}: {e}")

    if not isinstance(user_config, dict):
        raise ConfigurationError(f"Configuration {path} must contain a JSON object")

    config = _deep_merge(DEFAULT_CONFIG, user_config)

    env_interface = os.environ.get(INTERFACE_ENV_VAR)
    if env_interface:
        config['wifi']['interface'] = env_interface

    return config


def is_mock_mode(config: Dict) -> bool:
    """True when debug mode asks for simulated tools instead of real hardware"""
    debug = config.get('debug', {})
    return bool(debug.get('enabled') and debug.get('mock_tools'))


def build_runner(config: Dict):
    """Create the process runner matching the configuration"""
    if is_mock_mode(config):
        from .mock_tools import MockProcessRunner
        return MockProcessRunner(handshake_after=config['debug'].get('handshake_after', 2))

    from .process_runner import ProcessRunner
    return ProcessRunner(use_sudo=config['wifi'].get('use_sudo', True))
