from .sources import (
    LocalCacheSource,
    ProjectLocalCache,
    RemoteIndex,
    RepositorySource,
    SystemCache,
    find_project_cache,
    index_url_for,
    iter_self_and_parents,
)
from .transport import DownloadListener, HttpTransport, NullDownloadListener, proxy_url

__all__ = [
    "RepositorySource",
    "LocalCacheSource",
    "ProjectLocalCache",
    "SystemCache",
    "RemoteIndex",
    "find_project_cache",
    "iter_self_and_parents",
    "index_url_for",
    "HttpTransport",
    "DownloadListener",
    "NullDownloadListener",
    "proxy_url",
]
