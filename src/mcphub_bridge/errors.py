"""Error taxonomy shared by every component of the bridge.

Each error carries a short ``code`` that the message handlers put into error
responses, so the UI can tell a network problem from a bad config file.
"""

from __future__ import annotations


class MCPHubError(Exception):
    """Base exception for bridge errors."""

    code = "internal_error"


class ConfigurationError(MCPHubError):
    """Home directory, shell, persisted state or config file is unusable."""

    code = "configuration_error"


class FetchError(MCPHubError):
    """Downloading or unpacking an archive failed."""

    code = "fetch_error"


class NetworkError(FetchError):
    """Transport failure or a non-success HTTP status."""

    code = "network_error"


class ArchiveError(FetchError):
    """The downloaded archive is corrupt or of an unsupported format."""

    code = "archive_error"


class FilesystemError(MCPHubError):
    """A path could not be created, linked or written."""

    code = "filesystem_error"


class NotFoundError(MCPHubError):
    """A server id is not present in the catalog."""

    code = "not_found"
