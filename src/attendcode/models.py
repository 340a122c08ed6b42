"""Pydantic models for codes, secrets and identities."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class HashAlgorithm(StrEnum):
    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA512 = "sha512"


class Role(StrEnum):
    EMPLOYEE = "employee"
    RECEPTIONIST = "receptionist"
    ADMIN = "admin"


class CodeEngineConfig(BaseModel):
    """Parameters of the time-step code algorithm.

    Range checks happen when a ``CodeEngine`` is built so that a bad
    deployment value surfaces as ``ConfigurationError``.
    """

    model_config = ConfigDict(frozen=True)

    digits: int = 6
    step_seconds: int = 30
    drift_steps: int = 1
    algorithm: HashAlgorithm = HashAlgorithm.SHA1


class GeneratedCode(BaseModel):
    """Code valid for one time step. Recomputed on demand, never stored."""

    model_config = ConfigDict(frozen=True)

    code: str
    counter: int
    valid_from: int
    expires_at: int

    def seconds_remaining(self, now: float) -> float:
        return max(0.0, self.expires_at - now)


class VerificationResult(BaseModel):
    """Outcome of a verify call. ``offset`` is the matched step (0 = current)."""

    model_config = ConfigDict(frozen=True)

    accepted: bool
    offset: int | None = None
    counter: int | None = None


class Identity(BaseModel):
    """Authenticated actor extracted from an identity token."""

    uid: str
    scope_id: str
    role: Role


class Secret(BaseModel):
    """Shared secret issued for a scope (organization)."""

    model_config = ConfigDict(frozen=True)

    scope_id: str
    value: str
    version: int = 1
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    rotated_at: datetime | None = None

    def __repr__(self) -> str:
        return f"Secret(scope_id={self.scope_id!r}, version={self.version})"

    __str__ = __repr__


class SecretResponse(BaseModel):
    """Wire shape returned by the secret endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    secret_totp: str = Field(alias="secretTOTP")
    scope_id: str = Field(alias="scopeId")
    version: int = 1


class CodeSubmission(BaseModel):
    code: str
