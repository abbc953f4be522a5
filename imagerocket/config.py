"""
YAML configuration for the command line.

Every key is optional; missing keys take their value from DEFAULT_CONFIG:

    loglevel: WARNING
    pipeline: saved.json     # persisted pipeline document to run instead of the default
    sampler: {normalizedX: 0, normalizedY: 0, pixelX: 0, pixelY: 0}
    expand: 4
    manual_color: "#ffffff"  # or null to sample the border color
    tolerance: 0
"""

import copy
import logging

import yaml

from .constants import C
from .image import parse_color
from .logconfig import LOGLEVELS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'loglevel': 'WARNING',
    'pipeline': None,
    'sampler': {'normalizedX': 0, 'normalizedY': 0, 'pixelX': 0, 'pixelY': 0},
    'expand': C.DEFAULT_EXPAND,
    'manual_color': None,
    'tolerance': 0,
}


class ConfigError(ValueError):
    """The configuration file is not usable"""


def _is_int(val):
    return isinstance(val, int) and not isinstance(val, bool)

def _is_number(val):
    return isinstance(val, (int, float)) and not isinstance(val, bool)

def validate_config(config):
    """Raise ConfigError unless config has the shape of DEFAULT_CONFIG."""
    unknown = set(config) - set(DEFAULT_CONFIG)
    if unknown:
        raise ConfigError(f"unknown configuration keys: {sorted(unknown)}")
    if config['loglevel'] not in LOGLEVELS:
        raise ConfigError(f"loglevel must be one of {LOGLEVELS}, not {config['loglevel']!r}")
    if config['pipeline'] is not None and not isinstance(config['pipeline'], str):
        raise ConfigError("pipeline must be a path")
    for key in ('expand', 'tolerance'):
        if not _is_int(config[key]):
            raise ConfigError(f"{key} must be an integer")
    if not 0 <= config['tolerance'] <= 255:
        raise ConfigError("tolerance must be between 0 and 255")

    sampler = config['sampler']
    unknown = set(sampler) - set(DEFAULT_CONFIG['sampler'])
    if unknown:
        raise ConfigError(f"unknown sampler keys: {sorted(unknown)}")
    for key in ('normalizedX', 'normalizedY'):
        if not _is_number(sampler[key]) or not 0 <= sampler[key] <= 1:
            raise ConfigError(f"sampler.{key} must be a number between 0 and 1")
    for key in ('pixelX', 'pixelY'):
        if not _is_int(sampler[key]):
            raise ConfigError(f"sampler.{key} must be an integer")

    if config['manual_color'] is not None:
        if not isinstance(config['manual_color'], str):
            raise ConfigError("manual_color must be a string like '#rrggbb'")
        try:
            parse_color(config['manual_color'])
        except ValueError as e:
            raise ConfigError(str(e)) from e
    return config


def load_config(path=None):
    """Return DEFAULT_CONFIG overlaid with the YAML file at path."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    if path is None:
        return config
    with open(path) as f:
        try:
            loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: {e}") from e
    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    logger.debug("config %s: %s", path, loaded)
    for (key, val) in loaded.items():
        if key == 'sampler':
            if not isinstance(val, dict):
                raise ConfigError(f"{path}: sampler must be a mapping")
            config['sampler'].update(val)
        else:
            config[key] = val
    return validate_config(config)
