"""Server-side secret provisioning.

A scope (organization) gets its secret on the first authorized request;
later requests return the same secret until an admin rotates it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from attendcode import events
from attendcode.auth.identity import TokenVerifier
from attendcode.auth.totp import generate_secret
from attendcode.config import SecretStoreBackend, load_policy, settings
from attendcode.errors import AuthorizationError, ScopeNotProvisioned
from attendcode.models import Identity, Secret
from attendcode.provisioning.store import InMemorySecretStore, PostgresSecretStore, SecretStore

logger = logging.getLogger(__name__)


def build_store(backend: SecretStoreBackend | None = None) -> SecretStore:
    backend = backend or settings.secret_store
    if backend == SecretStoreBackend.POSTGRES:
        return PostgresSecretStore()
    return InMemorySecretStore()


class SecretProvisioner:
    """Authenticates callers and hands out their scope's shared secret."""

    def __init__(
        self,
        store: SecretStore | None = None,
        verifier: TokenVerifier | None = None,
        policy: dict[str, Any] | None = None,
        secret_factory: Callable[[], str] = generate_secret,
    ) -> None:
        self.store = store if store is not None else build_store()
        self.verifier = verifier or TokenVerifier()
        self.policy = policy if policy is not None else load_policy()
        self.secret_factory = secret_factory

    def authorize(self, identity_token: str | None, action: str) -> Identity:
        """Verify the token and check the role against ``<action>_roles``."""
        identity = self.verifier.verify(identity_token)
        allowed = self.policy.get(f"{action}_roles", [])
        if identity.role not in allowed:
            logger.warning("Role %s may not %s (scope=%s, uid=%s)",
                           identity.role, action, identity.scope_id, identity.uid)
            raise AuthorizationError(f"Role '{identity.role}' is not allowed to {action} codes")
        return identity

    async def get_secret(self, identity_token: str | None) -> Secret:
        identity = self.authorize(identity_token, "provision")
        secret, created = await self.store.create_if_absent(identity.scope_id, self.secret_factory())
        if created:
            await events.emit("provisioning", "info", "secret_created",
                              f"Secret v{secret.version} created for scope {identity.scope_id}",
                              scope_id=identity.scope_id, actor_id=identity.uid)
        else:
            await events.emit("provisioning", "debug", "secret_issued",
                              f"Secret v{secret.version} issued for scope {identity.scope_id}",
                              scope_id=identity.scope_id, actor_id=identity.uid)
        return secret

    async def rotate_secret(self, identity_token: str | None) -> Secret:
        identity = self.authorize(identity_token, "rotate")
        secret = await self.store.rotate(identity.scope_id, self.secret_factory())
        await events.emit("provisioning", "warning", "secret_rotated",
                          f"Secret rotated to v{secret.version} for scope {identity.scope_id}",
                          scope_id=identity.scope_id, actor_id=identity.uid,
                          context={"version": secret.version})
        return secret

    async def secret_for_scope(self, scope_id: str) -> Secret:
        """Look up an issued secret without creating one."""
        secret = await self.store.get(scope_id)
        if secret is None:
            raise ScopeNotProvisioned(f"No secret issued for scope {scope_id}")
        return secret
