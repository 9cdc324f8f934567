from .archive import extract_archive
from .layout import cache_dir, package_module_files, runtime_folders, wraps_dir
from .store import CacheStore

__all__ = [
    "CacheStore",
    "extract_archive",
    "cache_dir",
    "wraps_dir",
    "package_module_files",
    "runtime_folders",
]
