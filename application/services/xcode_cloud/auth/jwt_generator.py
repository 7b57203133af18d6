"""
App Store Connect JWT Token Generator

Generates the short-lived ES256 JSON Web Tokens App Store Connect accepts as
bearer credentials. Signing is a pure function of (credentials, now).
"""

import logging

import jwt

from application.services.xcode_cloud.models.types import Credentials
from common.constants import TOKEN_AUDIENCE, TOKEN_LIFETIME_SECONDS

logger = logging.getLogger(__name__)

ALGORITHM = "ES256"


class AppStoreConnectJWTGenerator:
    """Generates JWT tokens for App Store Connect API keys."""

    def __init__(self, lifetime_seconds: int = TOKEN_LIFETIME_SECONDS):
        """
        Initialize JWT generator.

        Args:
            lifetime_seconds: Validity window of each token (App Store Connect allows 20 minutes)
        """
        if lifetime_seconds > TOKEN_LIFETIME_SECONDS:
            logger.warning(
                f"Requested lifetime {lifetime_seconds}s exceeds App Store Connect's 20-minute limit. "
                f"Using {TOKEN_LIFETIME_SECONDS} seconds instead."
            )
            lifetime_seconds = TOKEN_LIFETIME_SECONDS

        if lifetime_seconds < 1:
            raise ValueError("Lifetime must be at least 1 second")

        self.lifetime_seconds = lifetime_seconds

    def generate_jwt(self, credentials: Credentials, now: int) -> str:
        """
        Generate a JWT token for App Store Connect authentication.

        App Store Connect requires:
        - Algorithm: ES256, with the API key ID as 'kid' header
        - Issuer (iss): Issuer ID of the team
        - Issued at (iat) / Expiration (exp): at most 20 minutes apart
        - Audience (aud): appstoreconnect-v1

        Args:
            credentials: Active API key
            now: Issue time in epoch seconds

        Returns:
            JWT token as string

        Raises:
            ValueError: If the private key cannot sign the token
        """
        payload = {
            "iss": credentials.issuer_id,
            "iat": now,
            "exp": now + self.lifetime_seconds,
            "aud": TOKEN_AUDIENCE,
        }
        headers = {
            "kid": credentials.key_id,
            "typ": "JWT",
        }

        try:
            token = jwt.encode(
                payload, credentials.private_key, algorithm=ALGORITHM, headers=headers
            )
        except Exception as e:
            logger.error(f"Failed to generate App Store Connect JWT: {type(e).__name__}")
            raise ValueError(f"Failed to sign App Store Connect token: {e}") from e

        logger.debug(f"Generated App Store Connect JWT (expires in {self.lifetime_seconds}s)")
        return token
