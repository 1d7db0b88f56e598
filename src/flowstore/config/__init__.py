"""
Configuration for flow storage.
"""

from .settings import StorageSettings, load_settings, resolve_paths, resolve_user_dir

__all__ = [
    "StorageSettings",
    "load_settings",
    "resolve_paths",
    "resolve_user_dir",
]
