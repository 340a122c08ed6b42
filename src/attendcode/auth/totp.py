"""TOTP (Time-based One-Time Password) attendance codes.

Uses pyotp for the HOTP primitive (HMAC over the step counter plus
dynamic truncation). Counters are computed here from plain Unix
seconds so the step boundary never depends on the local timezone.
"""

from __future__ import annotations

import binascii
import hashlib
import math
import time

import pyotp
import pyotp.utils

from attendcode.errors import ConfigurationError, SecretFormatError
from attendcode.models import CodeEngineConfig, GeneratedCode, VerificationResult

MIN_DIGITS = 6
MAX_DIGITS = 10  # pyotp refuses longer codes


def generate_secret() -> str:
    """Generate a new TOTP secret (base32-encoded, 32 chars)."""
    return pyotp.random_base32()


def get_code(secret: str) -> str:
    """Get the current TOTP code for a secret with default parameters."""
    return CodeEngine().generate(secret, time.time()).code


def verify_code(secret: str, code: str) -> bool:
    """Verify a TOTP code against a secret (allows +-1 window)."""
    return CodeEngine().verify(secret, code, time.time()).accepted


def get_provisioning_uri(secret: str, name: str, issuer: str = "AttendCode",
                         config: CodeEngineConfig | None = None) -> str:
    """Get the otpauth:// URI for QR code enrollment in authenticator apps."""
    config = config or CodeEngineConfig()
    return pyotp.TOTP(
        secret,
        digits=config.digits,
        digest=getattr(hashlib, config.algorithm.value),
        interval=config.step_seconds,
    ).provisioning_uri(name=name, issuer_name=issuer)


def validate_config(config: CodeEngineConfig) -> None:
    if not MIN_DIGITS <= config.digits <= MAX_DIGITS:
        raise ConfigurationError(
            f"digits must be between {MIN_DIGITS} and {MAX_DIGITS}, got {config.digits}"
        )
    if config.step_seconds <= 0:
        raise ConfigurationError(f"step_seconds must be positive, got {config.step_seconds}")
    if config.drift_steps < 0:
        raise ConfigurationError(f"drift_steps must be >= 0, got {config.drift_steps}")


class CodeEngine:
    """Stateless code generator/verifier bound to one configuration.

    Safe to share between threads and tasks: nothing is mutated after
    construction.
    """

    def __init__(self, config: CodeEngineConfig | None = None) -> None:
        config = config or CodeEngineConfig()
        validate_config(config)
        self.config = config
        self._digest = getattr(hashlib, config.algorithm.value)

    def counter_at(self, now: float) -> int:
        if now < 0:
            raise ValueError(f"time must be non-negative, got {now}")
        return math.floor(now / self.config.step_seconds)

    def step_bounds(self, counter: int) -> tuple[int, int]:
        start = counter * self.config.step_seconds
        return start, start + self.config.step_seconds

    def _otp(self, secret: str) -> pyotp.HOTP:
        otp = pyotp.HOTP(secret, digits=self.config.digits, digest=self._digest)
        try:
            otp.byte_secret()
        except (binascii.Error, ValueError) as e:
            raise SecretFormatError("secret is not valid base32") from e
        return otp

    def code_for_counter(self, secret: str, counter: int) -> str:
        return self._otp(secret).generate_otp(counter)

    def generate(self, secret: str, now: float) -> GeneratedCode:
        """Code for the step containing ``now`` (Unix seconds)."""
        counter = self.counter_at(now)
        valid_from, expires_at = self.step_bounds(counter)
        return GeneratedCode(
            code=self.code_for_counter(secret, counter),
            counter=counter,
            valid_from=valid_from,
            expires_at=expires_at,
        )

    def verify(
        self,
        secret: str,
        submitted_code: str,
        now: float,
        drift_steps: int | None = None,
    ) -> VerificationResult:
        """Check a submitted code against the steps around ``now``.

        Candidates are tried current step first, then by increasing
        distance, past before future.
        """
        if drift_steps is None:
            drift_steps = self.config.drift_steps
        if drift_steps < 0:
            raise ConfigurationError(f"drift_steps must be >= 0, got {drift_steps}")

        otp = self._otp(secret)
        submitted_code = (submitted_code or "").strip()
        if len(submitted_code) != self.config.digits or not submitted_code.isdigit():
            return VerificationResult(accepted=False)

        counter = self.counter_at(now)
        for offset in _offsets(drift_steps):
            candidate = counter + offset
            if candidate < 0:
                continue
            if pyotp.utils.strings_equal(otp.generate_otp(candidate), submitted_code):
                return VerificationResult(accepted=True, offset=offset, counter=candidate)
        return VerificationResult(accepted=False)


def _offsets(drift_steps: int) -> list[int]:
    offsets = [0]
    for distance in range(1, drift_steps + 1):
        offsets.extend((-distance, distance))
    return offsets
