"""Exceptions raised by the Xcode Cloud integration."""

from typing import Optional


class XcodeCloudError(Exception):
    """Base class for all Xcode Cloud integration errors."""

    pass


class NotAuthenticated(XcodeCloudError):
    """Raised when no credential set is stored."""

    def __init__(self, message: str = "Not authenticated. Please sign in first."):
        super().__init__(message)


class CredentialValidationFailed(XcodeCloudError):
    """Raised when App Store Connect rejects credentials during sign-in."""

    def __init__(
        self,
        message: str = "Invalid credentials. Could not authenticate with App Store Connect.",
    ):
        super().__init__(message)


class RemoteApiError(XcodeCloudError):
    """Raised when the App Store Connect API answers with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransportFailure(RemoteApiError):
    """Raised when a request never produced an HTTP response."""

    pass
