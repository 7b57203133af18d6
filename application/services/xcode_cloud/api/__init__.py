"""
App Store Connect API Module

Handles the Xcode Cloud REST API interactions:
- Authenticated request execution and error mapping
- Products, workflows, build runs, build actions and artifacts
"""

from application.services.xcode_cloud.api.ci_operations import CiOperations
from application.services.xcode_cloud.api.client import (
    AppStoreConnectAPIClient,
    parse_error_message,
)

__all__ = [
    "AppStoreConnectAPIClient",
    "CiOperations",
    "parse_error_message",
]
