"""Attendance code endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Header, Request

from attendcode.models import CodeSubmission, Secret, SecretResponse, VerificationResult

router = APIRouter(prefix="/codeAuthentication", tags=["codes"])


def _bearer(authorization: str | None, legacy: str | None) -> str | None:
    # Older terminals send the raw token in an `auth` header.
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token
        return None
    return legacy


def _response(secret: Secret) -> dict:
    return SecretResponse(
        secret_totp=secret.value, scope_id=secret.scope_id, version=secret.version
    ).model_dump(by_alias=True)


@router.get("/secrettotp")
async def get_secret(
    request: Request,
    authorization: str | None = Header(None),
    auth: str | None = Header(None),
):
    """Secret for the caller's organization, created on first request."""
    provisioner = request.app.state.provisioner
    secret = await provisioner.get_secret(_bearer(authorization, auth))
    return _response(secret)


@router.post("/rotate")
async def rotate_secret(
    request: Request,
    authorization: str | None = Header(None),
    auth: str | None = Header(None),
):
    """Replace the organization's secret (admin only)."""
    provisioner = request.app.state.provisioner
    secret = await provisioner.rotate_secret(_bearer(authorization, auth))
    return _response(secret)


@router.post("/verify", response_model=VerificationResult)
async def verify_code(
    body: CodeSubmission,
    request: Request,
    authorization: str | None = Header(None),
    auth: str | None = Header(None),
):
    """Accept or reject a submitted code. A wrong code is not an HTTP error."""
    verifier = request.app.state.verifier
    return await verifier.verify_submission(_bearer(authorization, auth), body.code)
