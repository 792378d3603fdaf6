# quartermaster/core/exceptions.py

from typing import Optional


class QuartermasterError(Exception):
    """Base class for errors reported to the user by the CLI."""


class ConnectionFileError(QuartermasterError):
    """Raised when the stored connection record can't be read or written."""


class ManifestError(QuartermasterError):
    """Raised when an app.yaml manifest is missing or malformed."""


class ArchiveBuildError(QuartermasterError):
    """Raised when an application archive could not be written.

    A partially written archive is left on disk and must not be trusted.
    """


class RemoteServiceError(QuartermasterError):
    """Raised when the agent service can't be reached or rejects a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
