"""
App Store Connect Token Cache

Owns the active credential set and the bearer token signed from it.
Handles sign-in validation, token caching, and pre-emptive renewal.
"""

import logging
import time
from typing import Callable, Optional

import httpx

from application.services.xcode_cloud.auth.jwt_generator import AppStoreConnectJWTGenerator
from application.services.xcode_cloud.exceptions import (
    CredentialValidationFailed,
    NotAuthenticated,
    XcodeCloudError,
)
from application.services.xcode_cloud.models.types import CachedToken, Credentials
from common.auth.secret_store import SecretStore
from common.config.config import XCODE_CLOUD_API_BASE_URL, XCODE_CLOUD_HTTP_TIMEOUT_SECONDS
from common.constants import (
    SECRET_KEY_API_KEY_ID,
    SECRET_KEY_ISSUER_ID,
    SECRET_KEY_PRIVATE_KEY,
    TOKEN_REFRESH_BUFFER_SECONDS,
)

logger = logging.getLogger(__name__)


class TokenCache:
    """Signs and caches App Store Connect bearer tokens."""

    def __init__(
        self,
        secret_store: SecretStore,
        jwt_generator: Optional[AppStoreConnectJWTGenerator] = None,
        clock: Callable[[], float] = time.time,
        base_url: str = XCODE_CLOUD_API_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the token cache.

        Args:
            secret_store: Store holding the active credential set
            jwt_generator: Token signer (creates new if not provided)
            clock: Returns the current time in epoch seconds
            base_url: App Store Connect API base URL used for sign-in validation
            transport: Optional httpx transport for the validation request
        """
        self.secret_store = secret_store
        self.jwt_generator = jwt_generator or AppStoreConnectJWTGenerator()
        self._clock = clock
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self._cached_token: Optional[CachedToken] = None

    @property
    def cached_token(self) -> Optional[CachedToken]:
        return self._cached_token

    def _now(self) -> int:
        return int(self._clock())

    async def get_credentials(self) -> Optional[Credentials]:
        """Load the active credential set, or None if any part is missing."""
        key_id = await self.secret_store.get(SECRET_KEY_API_KEY_ID)
        issuer_id = await self.secret_store.get(SECRET_KEY_ISSUER_ID)
        private_key = await self.secret_store.get(SECRET_KEY_PRIVATE_KEY)

        if not key_id or not issuer_id or not private_key:
            return None

        return Credentials(key_id=key_id, issuer_id=issuer_id, private_key=private_key)

    async def is_authenticated(self) -> bool:
        return await self.get_credentials() is not None

    async def get_token(self) -> str:
        """
        Get a bearer token, signing a new one when the cached one is stale.

        Returns:
            Token string

        Raises:
            NotAuthenticated: If no credential set is stored
            XcodeCloudError: If the stored private key cannot sign a token
        """
        now = self._now()
        cached = self._cached_token

        if cached is not None and cached.is_usable(now, TOKEN_REFRESH_BUFFER_SECONDS):
            logger.debug("Using cached App Store Connect token")
            return cached.value

        credentials = await self.get_credentials()
        if credentials is None:
            raise NotAuthenticated()

        try:
            signed = self.jwt_generator.generate_jwt(credentials, now)
        except ValueError as e:
            raise XcodeCloudError(str(e)) from e

        token = CachedToken.issue(signed, now, self.jwt_generator.lifetime_seconds)
        self._cached_token = token
        logger.info(f"Signed new App Store Connect token (expires at {token.expires_at})")
        return token.value

    def invalidate(self) -> None:
        """Drop the cached token so the next request signs a fresh one."""
        self._cached_token = None

    async def sign_in(self, credentials: Credentials) -> None:
        """
        Validate and commit a freshly supplied credential set.

        Args:
            credentials: API key entered by the user

        Raises:
            CredentialValidationFailed: If App Store Connect rejects the key;
                nothing is stored in that case
            Exception: Whatever the secret store raises on a failed write,
                after the partially written set has been removed
        """
        if not await self.validate_credentials(credentials):
            raise CredentialValidationFailed()

        self.invalidate()
        try:
            await self.secret_store.store(SECRET_KEY_API_KEY_ID, credentials.key_id)
            await self.secret_store.store(SECRET_KEY_ISSUER_ID, credentials.issuer_id)
            await self.secret_store.store(SECRET_KEY_PRIVATE_KEY, credentials.private_key)
        except Exception as e:
            logger.error(f"Failed to store credentials, clearing partial write: {e}")
            await self.sign_out()
            raise

        logger.info("Signed in to App Store Connect")

    async def sign_out(self) -> None:
        """Forget the stored credential set and the cached token."""
        await self.secret_store.delete(SECRET_KEY_API_KEY_ID)
        await self.secret_store.delete(SECRET_KEY_ISSUER_ID)
        await self.secret_store.delete(SECRET_KEY_PRIVATE_KEY)
        self.invalidate()
        logger.info("Signed out of App Store Connect")

    async def validate_credentials(self, credentials: Credentials) -> bool:
        """
        Check credentials with a single cheap API call.

        A success or a 403 (valid key without access to apps) counts as valid.
        Any other status, a signing error, or a network failure counts as invalid.

        Args:
            credentials: Credentials to check

        Returns:
            True if App Store Connect accepted the signature
        """
        try:
            token = self.jwt_generator.generate_jwt(credentials, self._now())

            timeout_config = httpx.Timeout(XCODE_CLOUD_HTTP_TIMEOUT_SECONDS, connect=10.0)
            async with httpx.AsyncClient(
                timeout=timeout_config, trust_env=False, transport=self._transport
            ) as client:
                response = await client.get(
                    f"{self.base_url}/apps",
                    params={"limit": 1},
                    headers={"Authorization": f"Bearer {token}"},
                )
        except (ValueError, httpx.HTTPError) as e:
            logger.warning(f"Credential validation failed: {e}")
            return False

        if response.is_success or response.status_code == 403:
            return True

        logger.warning(f"Credential validation rejected (status {response.status_code})")
        return False
