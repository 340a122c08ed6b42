"""Backing stores for scope secrets.

Both stores guarantee at most one secret per scope when first requests
race: creation is an atomic create-if-absent and every caller gets the
stored value back.
"""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime
from typing import Any, Protocol

from attendcode import crypto, db
from attendcode.models import Secret

logger = logging.getLogger(__name__)


class SecretStore(Protocol):
    async def get(self, scope_id: str) -> Secret | None: ...

    async def create_if_absent(self, scope_id: str, value: str) -> tuple[Secret, bool]:
        """Return the scope's secret and whether this call created it."""
        ...

    async def rotate(self, scope_id: str, value: str) -> Secret: ...


class InMemorySecretStore:
    """Process-local store for development and tests."""

    def __init__(self) -> None:
        self._secrets: dict[str, Secret] = {}
        self._lock = threading.Lock()
        self.created_count = 0

    async def get(self, scope_id: str) -> Secret | None:
        return self._secrets.get(scope_id)

    async def create_if_absent(self, scope_id: str, value: str) -> tuple[Secret, bool]:
        with self._lock:
            existing = self._secrets.get(scope_id)
            if existing is not None:
                return existing, False
            secret = Secret(scope_id=scope_id, value=value)
            self._secrets[scope_id] = secret
            self.created_count += 1
            return secret, True

    async def rotate(self, scope_id: str, value: str) -> Secret:
        with self._lock:
            previous = self._secrets.get(scope_id)
            if previous is None:
                secret = Secret(scope_id=scope_id, value=value)
                self.created_count += 1
            else:
                secret = Secret(
                    scope_id=scope_id,
                    value=value,
                    version=previous.version + 1,
                    created_at=previous.created_at,
                    rotated_at=datetime.now(UTC),
                )
            self._secrets[scope_id] = secret
            return secret


class PostgresSecretStore:
    """Durable store in ``scope_secrets``; values are AES-GCM encrypted."""

    async def get(self, scope_id: str) -> Secret | None:
        row = await db.execute_one(
            """SELECT scope_id, secret_enc, version, created_at, rotated_at
               FROM scope_secrets WHERE scope_id = %s""",
            (scope_id,),
        )
        return _from_row(row) if row else None

    async def create_if_absent(self, scope_id: str, value: str) -> tuple[Secret, bool]:
        row = await db.execute_one(
            """INSERT INTO scope_secrets (scope_id, secret_enc)
               VALUES (%s, %s)
               ON CONFLICT (scope_id) DO NOTHING
               RETURNING scope_id, secret_enc, version, created_at, rotated_at""",
            (scope_id, crypto.encrypt(value, scope_id)),
        )
        if row:
            return _from_row(row), True
        existing = await self.get(scope_id)
        if existing is None:
            raise RuntimeError(f"Secret for scope {scope_id} vanished after conflicting insert")
        return existing, False

    async def rotate(self, scope_id: str, value: str) -> Secret:
        row = await db.execute_one(
            """INSERT INTO scope_secrets (scope_id, secret_enc)
               VALUES (%s, %s)
               ON CONFLICT (scope_id) DO UPDATE SET
                   secret_enc = EXCLUDED.secret_enc,
                   version = scope_secrets.version + 1,
                   rotated_at = now()
               RETURNING scope_id, secret_enc, version, created_at, rotated_at""",
            (scope_id, crypto.encrypt(value, scope_id)),
        )
        return _from_row(row)


def _from_row(row: dict[str, Any]) -> Secret:
    return Secret(
        scope_id=row["scope_id"],
        value=crypto.decrypt(row["secret_enc"], row["scope_id"]),
        version=row["version"],
        created_at=row["created_at"],
        rotated_at=row["rotated_at"],
    )
