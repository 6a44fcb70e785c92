"""Configuration files and loaders.

Product tables (CPF rates, ceilings, allocation bands) live in JSON files
in this directory so they can change without code changes.
"""

from .defaults import get_config_value, load_config

__all__ = ['get_config_value', 'load_config']
