"""
App Store Connect Authentication Module

Handles API key authentication including:
- ES256 JWT generation
- Bearer token caching and pre-emptive renewal
- Sign-in validation and sign-out
"""

from application.services.xcode_cloud.auth.jwt_generator import AppStoreConnectJWTGenerator
from application.services.xcode_cloud.auth.token_cache import TokenCache

__all__ = [
    "AppStoreConnectJWTGenerator",
    "TokenCache",
]
