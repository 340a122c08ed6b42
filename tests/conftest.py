"""Shared fixtures."""

from __future__ import annotations

import pytest

from attendcode.auth.identity import TokenVerifier
from attendcode.provisioning.service import SecretProvisioner
from attendcode.provisioning.store import InMemorySecretStore

TOKEN_SECRET = "test-identity-signing-secret-0123456789abcdef"

POLICY = {
    "provision_roles": ["admin", "receptionist"],
    "rotate_roles": ["admin"],
    "verify_roles": ["admin", "receptionist", "employee"],
}


@pytest.fixture
def verifier() -> TokenVerifier:
    return TokenVerifier(secret=TOKEN_SECRET, algorithm="HS256", audience="attendcode")


@pytest.fixture
def store() -> InMemorySecretStore:
    return InMemorySecretStore()


@pytest.fixture
def provisioner(store, verifier) -> SecretProvisioner:
    return SecretProvisioner(store=store, verifier=verifier, policy=dict(POLICY))


@pytest.fixture
def tokens(verifier) -> dict[str, str]:
    return {
        "admin": verifier.issue("u-admin", "org-1", "admin"),
        "receptionist": verifier.issue("u-desk", "org-1", "receptionist"),
        "employee": verifier.issue("u-emp", "org-1", "employee"),
        "other_org_admin": verifier.issue("u-admin2", "org-2", "admin"),
    }
