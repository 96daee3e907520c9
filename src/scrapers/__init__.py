"""Store source registry"""

from typing import Dict, List

# Registry of available sources
SOURCE_REGISTRY: Dict[str, str] = {
    'consum': 'src.scrapers.consum',
}


def get_available_sources() -> List[str]:
    """Get list of all registered source names"""
    return list(SOURCE_REGISTRY.keys())


def get_source_module(source: str):
    """Dynamically import and return a source module"""
    import importlib
    if source not in SOURCE_REGISTRY:
        raise ValueError(f"Unknown source: {source}. Available: {get_available_sources()}")
    return importlib.import_module(SOURCE_REGISTRY[source])


__all__ = ['SOURCE_REGISTRY', 'get_available_sources', 'get_source_module']
