"""Pytest configuration for tests.

Sets up Python path and fixtures for all tests.
"""

import sys
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

# Add project root to Python path so imports work correctly
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from application.services.xcode_cloud.models.types import Credentials  # noqa: E402


@pytest.fixture(scope="session")
def ec_private_key():
    """P-256 key pair matching an App Store Connect .p8 key."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def private_key_pem(ec_private_key):
    return ec_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def public_key_pem(ec_private_key):
    return ec_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture
def credentials(private_key_pem):
    return Credentials(
        key_id="ABC123DEFG",
        issuer_id="57246542-96fe-1a63-e053-0824d011072a",
        private_key=private_key_pem,
    )
