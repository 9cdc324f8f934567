from .loader import LoadedModule, import_module_file, load_modules
from .locator import Convention, EntryPoint, EntryPointLocator, convention_of
from .record import (
    EntryPointCacheRecord,
    ScanState,
    read_record,
    record_path_for,
    write_record,
)

__all__ = [
    "Convention",
    "EntryPoint",
    "EntryPointCacheRecord",
    "EntryPointLocator",
    "LoadedModule",
    "ScanState",
    "convention_of",
    "import_module_file",
    "load_modules",
    "read_record",
    "record_path_for",
    "write_record",
]
