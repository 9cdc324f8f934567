from .descriptor import (
    PackageDescriptor,
    parse_descriptor,
    read_descriptor,
    try_read_descriptor,
    write_descriptor,
)
from .index import RemoteIndexEntry, parse_index

__all__ = [
    "PackageDescriptor",
    "parse_descriptor",
    "read_descriptor",
    "try_read_descriptor",
    "write_descriptor",
    "RemoteIndexEntry",
    "parse_index",
]
