"""Configuration module for store sources"""

from typing import Dict, Any
import importlib

# Mapping of source names to their config modules
CONFIG_MODULES = {
    'consum': 'config.consum_config',
}

def get_config(source: str):
    """Get configuration module for a source"""
    if source not in CONFIG_MODULES:
        raise ValueError(f"Unknown source: {source}")
    return importlib.import_module(CONFIG_MODULES[source])

__all__ = ['get_config', 'CONFIG_MODULES']
