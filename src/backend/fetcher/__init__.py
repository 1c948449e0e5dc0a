"""
Remote file download and registration.
"""

from .remote_file import AuthContext, DownloadRequest, RemoteFileError, RemoteFileFetcher

__all__ = [
    "AuthContext",
    "DownloadRequest",
    "RemoteFileError",
    "RemoteFileFetcher",
]
