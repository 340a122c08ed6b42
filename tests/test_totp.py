"""Tests for code generation and verification."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from attendcode.auth.totp import (
    CodeEngine,
    generate_secret,
    get_code,
    get_provisioning_uri,
    verify_code,
)
from attendcode.errors import ConfigurationError, SecretFormatError
from attendcode.models import CodeEngineConfig, HashAlgorithm

SECRET = "JBSWY3DPEHPK3PXP"
OTHER_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"  # base32("12345678901234567890")
RFC_SHA256 = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQGEZA"
RFC_SHA512 = (
    "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"
    "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQGEZDGNA="
)


@pytest.fixture
def engine() -> CodeEngine:
    return CodeEngine(CodeEngineConfig(digits=6, step_seconds=30, drift_steps=1))


def _engine8(algorithm: HashAlgorithm = HashAlgorithm.SHA1) -> CodeEngine:
    return CodeEngine(CodeEngineConfig(digits=8, algorithm=algorithm))


# --- generation ---

def test_golden_value(engine):
    code = engine.generate(SECRET, 59)
    assert code.code == "996554"
    assert code.counter == 1
    assert code.valid_from == 30
    assert code.expires_at == 60


@pytest.mark.parametrize("now,expected", [
    (0, "282760"),
    (29.9, "282760"),
    (30, "996554"),
    (60, "602287"),
    (90, "143627"),
    (120, "960129"),
])
def test_codes_per_step(engine, now, expected):
    assert engine.generate(SECRET, now).code == expected


@pytest.mark.parametrize("now,expected", [
    (59, "94287082"),
    (1111111109, "07081804"),
    (1111111111, "14050471"),
    (1234567890, "89005924"),
    (2000000000, "69279037"),
])
def test_rfc6238_sha1_vectors(now, expected):
    assert _engine8().generate(OTHER_SECRET, now).code == expected


def test_rfc6238_sha256_vector():
    assert _engine8(HashAlgorithm.SHA256).generate(RFC_SHA256, 59).code == "46119246"


def test_rfc6238_sha512_vector():
    assert _engine8(HashAlgorithm.SHA512).generate(RFC_SHA512, 59).code == "90693936"


def test_generate_is_deterministic(engine):
    assert engine.generate(SECRET, 1_700_000_000) == engine.generate(SECRET, 1_700_000_000)


def test_leading_zeros_preserved(engine):
    # counter 29 truncates to 67820
    code = engine.generate(SECRET, 29 * 30)
    assert code.code == "067820"
    assert len(code.code) == 6


def test_fixed_width_across_steps(engine):
    for counter in range(500):
        code = engine.generate(SECRET, counter * 30)
        assert len(code.code) == 6
        assert code.code.isdigit()


def test_lowercase_secret_accepted(engine):
    assert engine.generate(SECRET.lower(), 59).code == "996554"


def test_malformed_secret(engine):
    with pytest.raises(SecretFormatError):
        engine.generate("NOT*BASE32!", 59)


def test_negative_time(engine):
    with pytest.raises(ValueError):
        engine.generate(SECRET, -1)


# --- configuration ---

@pytest.mark.parametrize("config", [
    CodeEngineConfig(digits=5),
    CodeEngineConfig(digits=11),
    CodeEngineConfig(step_seconds=0),
    CodeEngineConfig(step_seconds=-30),
    CodeEngineConfig(drift_steps=-1),
])
def test_invalid_config(config):
    with pytest.raises(ConfigurationError):
        CodeEngine(config)


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        CodeEngine(CodeEngineConfig(digits=4))


def test_engine_does_not_share_config():
    a = CodeEngine(CodeEngineConfig(step_seconds=10))
    b = CodeEngine()
    assert a.generate(SECRET, 59).counter == 5
    assert b.generate(SECRET, 59).counter == 1


# --- verification ---

def test_round_trip(engine):
    for now in (0, 59, 1_700_000_000, 2_000_000_015):
        code = engine.generate(SECRET, now).code
        result = engine.verify(SECRET, code, now, 0)
        assert result.accepted
        assert result.offset == 0


def test_one_step_drift_accepted(engine):
    code = engine.generate(SECRET, 59).code
    result = engine.verify(SECRET, code, 59 + 30, 1)
    assert result.accepted
    assert result.offset == -1
    assert result.counter == 1


def test_two_step_drift_rejected(engine):
    code = engine.generate(SECRET, 59).code
    result = engine.verify(SECRET, code, 59 + 60, 1)
    assert not result.accepted
    assert result.offset is None


def test_future_code_within_drift(engine):
    code = engine.generate(SECRET, 65).code
    result = engine.verify(SECRET, code, 59, 1)
    assert result.accepted
    assert result.offset == 1


def test_step_boundary(engine):
    expired = engine.generate(SECRET, 59.999).code
    fresh = engine.generate(SECRET, 60).code
    assert engine.verify(SECRET, expired, 60, 1).offset == -1
    assert engine.verify(SECRET, fresh, 60, 1).offset == 0
    assert not engine.verify(SECRET, expired, 60, 0).accepted


def test_default_drift_from_config():
    strict = CodeEngine(CodeEngineConfig(drift_steps=0))
    code = strict.generate(SECRET, 59).code
    assert not strict.verify(SECRET, code, 89).accepted
    assert CodeEngine().verify(SECRET, code, 89).accepted


def test_drift_near_epoch_skips_negative_counters(engine):
    # counter 2 code seen at counter 0; offsets -1 and -2 do not exist
    result = engine.verify(SECRET, "602287", 5, 3)
    assert result.accepted
    assert result.offset == 2


def test_other_secret_rejected(engine):
    for k in range(201):
        now = k * 30 + 15
        code = engine.generate(OTHER_SECRET, now).code
        assert not engine.verify(SECRET, code, now, 1).accepted


@pytest.mark.parametrize("submitted", ["", "99655", "9965540", "99655a", "  "])
def test_malformed_submission_rejected(engine, submitted):
    assert not engine.verify(SECRET, submitted, 59).accepted


def test_submission_whitespace_stripped(engine):
    assert engine.verify(SECRET, " 996554 ", 59).accepted


def test_integer_like_code_without_padding_rejected(engine):
    assert not engine.verify(SECRET, "67820", 29 * 30).accepted
    assert engine.verify(SECRET, "067820", 29 * 30).accepted


def test_negative_drift_argument(engine):
    with pytest.raises(ConfigurationError):
        engine.verify(SECRET, "996554", 59, -1)


def test_concurrent_calls_match_sequential(engine):
    times = [1_700_000_000 + i * 7 for i in range(100)]
    sequential = [engine.generate(SECRET, t).code for t in times]

    def work(i: int) -> tuple[str, bool]:
        code = engine.generate(SECRET, times[i]).code
        return code, engine.verify(SECRET, code, times[i], 0).accepted

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(work, range(100)))

    assert [code for code, _ in results] == sequential
    assert all(ok for _, ok in results)


# --- helpers ---

def test_generate_secret():
    secret = generate_secret()
    assert len(secret) == 32
    assert secret != generate_secret()
    CodeEngine().generate(secret, 59)


def test_get_and_verify_code_now():
    secret = generate_secret()
    assert verify_code(secret, get_code(secret))


def test_provisioning_uri():
    uri = get_provisioning_uri(SECRET, "front-desk", issuer="Acme")
    assert uri.startswith("otpauth://totp/")
    assert "secret=JBSWY3DPEHPK3PXP" in uri
    assert "issuer=Acme" in uri
