"""Exception hierarchy for the bootstrap core."""

from typing import Iterable, Optional


class WrapbootError(Exception):
    """Base exception for all bootstrap errors."""

    pass


class SelfCheckError(WrapbootError):
    """Raised when the bootstrapper cannot verify, install or upgrade itself."""

    pass


class PackageNotFoundError(WrapbootError):
    """Raised when no repository tier can supply a requested package."""

    def __init__(self, name: str, required_by: Optional[str] = None):
        self.name = name
        self.required_by = required_by
        if required_by:
            message = (
                f"Package '{name}' (required by '{required_by}') was not found "
                "in the project repository, the system repository or the remote index."
            )
        else:
            message = (
                f"Package '{name}' was not found in the project repository, "
                "the system repository or the remote index."
            )
        super().__init__(message)


class FetchError(WrapbootError):
    """Raised when a remote document or package archive cannot be downloaded."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to download {url}: {reason}")


class ExtractionError(WrapbootError):
    """Raised when a package archive cannot be expanded into the cache."""

    pass


class DescriptorError(WrapbootError):
    """Raised when a package descriptor file is missing required keys."""

    def __init__(self, path, missing: Iterable[str]):
        self.path = path
        self.missing = sorted(missing)
        super().__init__(
            f"Descriptor {path} is missing required key(s): {', '.join(self.missing)}"
        )


class IndexFormatError(WrapbootError):
    """Raised when the remote index document cannot be parsed."""

    pass
