"""
Application services package.

Contains the Xcode Cloud monitor services.
"""

from application.services.xcode_cloud import XcodeCloudService

__all__ = [
    "XcodeCloudService",
]
