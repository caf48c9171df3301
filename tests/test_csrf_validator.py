"""Tests for token validation and one-time consumption."""

import threading
from pathlib import Path

import pytest

from tasks_api.db.session import build_engine, build_session_factory, create_tables
from tasks_api.services.csrf import (
    CsrfConfig,
    CsrfError,
    InvalidTokenFormatError,
    MissingTokenError,
    TokenAddressMismatchError,
    TokenAlreadyConsumedError,
    TokenConsumptionError,
    TokenExpiredError,
    TokenIssuer,
    TokenNotFoundError,
    TokenValidator,
    derive_token,
)
from tasks_api.services.csrf_store import TokenStore, TokenStoreError
from tests.conftest import CLIENT_ADDRESS, OTHER_ADDRESS, START_MS, TEST_SECRET, FakeClock

DAY_MS = 24 * 60 * 60 * 1000


def test_valid_token_is_consumed(
    issuer: TokenIssuer, validator: TokenValidator, token_store: TokenStore
) -> None:
    token = issuer.issue(CLIENT_ADDRESS)

    validator.validate(token, CLIENT_ADDRESS)

    assert token_store.get(token) is None


def test_token_cannot_be_replayed(issuer: TokenIssuer, validator: TokenValidator) -> None:
    token = issuer.issue(CLIENT_ADDRESS)
    validator.validate(token, CLIENT_ADDRESS)

    with pytest.raises(TokenNotFoundError) as exc_info:
        validator.validate(token, CLIENT_ADDRESS)

    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "Token not found or already used"


@pytest.mark.parametrize("token", [None, ""])
def test_missing_token(validator: TokenValidator, token) -> None:
    with pytest.raises(MissingTokenError) as exc_info:
        validator.validate(token, CLIENT_ADDRESS)

    assert exc_info.value.message == "CSRF token is required"


@pytest.mark.parametrize(
    "token",
    [
        "abc123",
        "A" * 64,
        "g" * 64,
        "a" * 63,
        "a" * 65,
        " " + "a" * 63,
    ],
)
def test_malformed_token(validator: TokenValidator, token: str) -> None:
    with pytest.raises(InvalidTokenFormatError) as exc_info:
        validator.validate(token, CLIENT_ADDRESS)

    assert exc_info.value.message == "Invalid token format"


def test_unknown_token(validator: TokenValidator) -> None:
    forged = derive_token(START_MS, "not-the-secret", CLIENT_ADDRESS)

    with pytest.raises(TokenNotFoundError):
        validator.validate(forged, CLIENT_ADDRESS)


def test_token_is_bound_to_issuing_address(
    issuer: TokenIssuer, validator: TokenValidator, token_store: TokenStore
) -> None:
    token = issuer.issue(CLIENT_ADDRESS)

    with pytest.raises(TokenAddressMismatchError) as exc_info:
        validator.validate(token, OTHER_ADDRESS)

    assert exc_info.value.message == "Token not valid for this IP"
    # A rejected attempt from another address does not burn the token.
    assert token_store.get(token) is not None
    validator.validate(token, CLIENT_ADDRESS)


def test_binding_can_be_disabled(
    issuer: TokenIssuer, token_store: TokenStore, csrf_config: CsrfConfig, clock: FakeClock
) -> None:
    config = CsrfConfig(
        secret=csrf_config.secret,
        token_ttl_ms=csrf_config.token_ttl_ms,
        max_tokens_per_address=csrf_config.max_tokens_per_address,
        sweep_interval_seconds=csrf_config.sweep_interval_seconds,
        bind_client_address=False,
    )
    unbound = TokenValidator(token_store, config, clock)
    token = issuer.issue(CLIENT_ADDRESS)

    unbound.validate(token, OTHER_ADDRESS)

    assert token_store.get(token) is None


def test_token_valid_until_ttl_elapses(
    issuer: TokenIssuer, validator: TokenValidator, clock: FakeClock
) -> None:
    token = issuer.issue(CLIENT_ADDRESS)
    clock.advance(DAY_MS)

    validator.validate(token, CLIENT_ADDRESS)


def test_expired_token_is_rejected_and_removed(
    issuer: TokenIssuer, validator: TokenValidator, token_store: TokenStore, clock: FakeClock
) -> None:
    token = issuer.issue(CLIENT_ADDRESS)
    clock.advance(DAY_MS + 1)

    with pytest.raises(TokenExpiredError) as exc_info:
        validator.validate(token, CLIENT_ADDRESS)

    assert exc_info.value.message == "Token has expired"
    assert token_store.get(token) is None
    with pytest.raises(TokenNotFoundError):
        validator.validate(token, CLIENT_ADDRESS)


def test_expired_token_rejected_even_if_cleanup_fails(
    issuer: TokenIssuer, validator: TokenValidator, clock: FakeClock, mocker
) -> None:
    token = issuer.issue(CLIENT_ADDRESS)
    clock.advance(DAY_MS + 1)
    mocker.patch.object(validator.store, "delete_by_token", side_effect=TokenStoreError("locked"))

    with pytest.raises(TokenExpiredError):
        validator.validate(token, CLIENT_ADDRESS)


def test_lost_delete_race_is_rejected(
    issuer: TokenIssuer, validator: TokenValidator, token_store: TokenStore, mocker
) -> None:
    token = issuer.issue(CLIENT_ADDRESS)
    stale = token_store.get(token)
    # Another request consumes the token after our lookup but before our delete.
    token_store.delete_by_token(token)
    mocker.patch.object(validator.store, "get", return_value=stale)

    with pytest.raises(TokenAlreadyConsumedError) as exc_info:
        validator.validate(token, CLIENT_ADDRESS)

    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "Token has already been used"


def test_consumption_failure_is_a_server_error(
    issuer: TokenIssuer, validator: TokenValidator, mocker
) -> None:
    token = issuer.issue(CLIENT_ADDRESS)
    mocker.patch.object(validator.store, "delete_by_token", side_effect=TokenStoreError("locked"))

    with pytest.raises(TokenConsumptionError) as exc_info:
        validator.validate(token, CLIENT_ADDRESS)

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "Failed to invalidate token"


def test_lookup_failure_rejects_request(validator: TokenValidator, mocker) -> None:
    mocker.patch.object(validator.store, "get", side_effect=TokenStoreError("locked"))

    with pytest.raises(CsrfError) as exc_info:
        validator.validate("a" * 64, CLIENT_ADDRESS)

    assert type(exc_info.value) is CsrfError
    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "Invalid CSRF token"


def test_concurrent_validation_accepts_exactly_once(tmp_path: Path) -> None:
    engine = build_engine(f"sqlite:///{tmp_path / 'tokens.db'}")
    create_tables(engine)
    store = TokenStore(build_session_factory(engine))
    config = CsrfConfig(
        secret=TEST_SECRET,
        token_ttl_ms=DAY_MS,
        max_tokens_per_address=10,
        sweep_interval_seconds=3600,
        bind_client_address=True,
    )
    clock = FakeClock()
    token = TokenIssuer(store, config, clock).issue(CLIENT_ADDRESS)
    validator = TokenValidator(store, config, clock)

    workers = 8
    barrier = threading.Barrier(workers)
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def attempt() -> None:
        barrier.wait()
        try:
            validator.validate(token, CLIENT_ADDRESS)
            result = "accepted"
        except CsrfError as exc:
            result = exc.code
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt) for _ in range(workers)]
    try:
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
    finally:
        engine.dispose()

    assert len(outcomes) == workers
    assert outcomes.count("accepted") == 1
    assert store.get(token) is None
