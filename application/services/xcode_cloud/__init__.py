"""
Xcode Cloud Service Package

Client-side monitor for App Store Connect (Xcode Cloud) builds.

Main Components:
- XcodeCloudService: Main facade wiring every component below
- Auth: ES256 token signing and caching
- API Client: App Store Connect REST API interactions
- Polling: Background refresh scheduler with backoff
- Logs: Live build log documents
- Monitoring / Tree / Status: Presentation data for the host
"""

from application.services.xcode_cloud.exceptions import (
    CredentialValidationFailed,
    NotAuthenticated,
    RemoteApiError,
    TransportFailure,
    XcodeCloudError,
)
from application.services.xcode_cloud.xcode_cloud_service import XcodeCloudService

__all__ = [
    "CredentialValidationFailed",
    "NotAuthenticated",
    "RemoteApiError",
    "TransportFailure",
    "XcodeCloudError",
    "XcodeCloudService",
]
