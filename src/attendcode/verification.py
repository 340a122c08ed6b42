"""Attendance code verification for submitted clock-in/out codes.

Only answers accept/reject. Writing the attendance record is up to the
caller.
"""

from __future__ import annotations

import logging

from attendcode import events
from attendcode.auth.totp import CodeEngine
from attendcode.models import VerificationResult
from attendcode.presenter import Clock, SystemClock
from attendcode.provisioning.service import SecretProvisioner

logger = logging.getLogger(__name__)


class CodeVerifier:
    def __init__(
        self,
        provisioner: SecretProvisioner,
        engine: CodeEngine | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.provisioner = provisioner
        self.engine = engine or CodeEngine()
        self.clock = clock or SystemClock()

    async def verify_submission(self, identity_token: str | None, code: str) -> VerificationResult:
        """Check a code submitted by an employee against its scope's secret.

        Raises AuthenticationError, AuthorizationError or
        ScopeNotProvisioned; a wrong code is a rejected result.
        """
        identity = self.provisioner.authorize(identity_token, "verify")
        secret = await self.provisioner.secret_for_scope(identity.scope_id)
        now = self.clock.now()
        result = self.engine.verify(secret.value, code, now)

        if result.accepted:
            await events.emit("verification", "info", "code_accepted",
                              f"Code accepted at offset {result.offset}",
                              scope_id=identity.scope_id, actor_id=identity.uid,
                              context={"offset": result.offset, "counter": result.counter})
        else:
            await events.emit("verification", "info", "code_rejected",
                              "Code rejected",
                              scope_id=identity.scope_id, actor_id=identity.uid,
                              context={"counter": self.engine.counter_at(now)})
        return result
