"""Tests for the background expiry sweeper."""

import asyncio
import dataclasses
import logging

from tasks_api.services.csrf import CsrfConfig, TokenIssuer
from tasks_api.services.csrf_store import TokenStore, TokenStoreError
from tasks_api.services.csrf_sweeper import ExpirySweeper
from tests.conftest import CLIENT_ADDRESS, OTHER_ADDRESS, FakeClock

DAY_MS = 24 * 60 * 60 * 1000


def test_sweep_once_removes_only_expired_tokens(
    issuer: TokenIssuer,
    token_store: TokenStore,
    csrf_config: CsrfConfig,
    clock: FakeClock,
) -> None:
    old = issuer.issue(CLIENT_ADDRESS)
    clock.advance(DAY_MS)
    fresh = issuer.issue(OTHER_ADDRESS)
    clock.advance(1)

    removed = ExpirySweeper(token_store, csrf_config, clock).sweep_once()

    assert removed == 1
    assert token_store.get(old) is None
    assert token_store.get(fresh) is not None


def test_sweep_once_with_nothing_expired(
    issuer: TokenIssuer, token_store: TokenStore, csrf_config: CsrfConfig, clock: FakeClock
) -> None:
    issuer.issue(CLIENT_ADDRESS)

    assert ExpirySweeper(token_store, csrf_config, clock).sweep_once() == 0


async def test_background_loop_purges_and_stops(
    issuer: TokenIssuer, token_store: TokenStore, csrf_config: CsrfConfig, clock: FakeClock
) -> None:
    token = issuer.issue(CLIENT_ADDRESS)
    clock.advance(DAY_MS + 1)
    config = dataclasses.replace(csrf_config, sweep_interval_seconds=0.1)
    sweeper = ExpirySweeper(token_store, config, clock)

    await sweeper.start()
    assert sweeper.running
    for _ in range(50):
        if token_store.get(token) is None:
            break
        await asyncio.sleep(0.05)
    await sweeper.stop()

    assert token_store.get(token) is None
    assert not sweeper.running


async def test_stop_without_start_is_a_noop(token_store: TokenStore, csrf_config: CsrfConfig) -> None:
    sweeper = ExpirySweeper(token_store, csrf_config)

    await sweeper.stop()

    assert not sweeper.running


async def test_store_failures_do_not_kill_the_loop(
    token_store: TokenStore, csrf_config: CsrfConfig, clock: FakeClock, mocker, caplog
) -> None:
    config = dataclasses.replace(csrf_config, sweep_interval_seconds=0.1)
    sweeper = ExpirySweeper(token_store, config, clock)
    purge = mocker.patch.object(
        token_store, "delete_older_than", side_effect=TokenStoreError("database is locked")
    )

    with caplog.at_level(logging.WARNING, logger="tasks_api.services.csrf_sweeper"):
        await sweeper.start()
        for _ in range(50):
            if purge.call_count >= 2:
                break
            await asyncio.sleep(0.05)
        assert sweeper.running
        await sweeper.stop()

    assert purge.call_count >= 2
    assert "failed to purge tokens" in caplog.text


async def test_unexpected_errors_are_logged_and_loop_continues(
    token_store: TokenStore, csrf_config: CsrfConfig, clock: FakeClock, mocker, caplog
) -> None:
    config = dataclasses.replace(csrf_config, sweep_interval_seconds=0.1)
    sweeper = ExpirySweeper(token_store, config, clock)
    purge = mocker.patch.object(token_store, "delete_older_than", side_effect=ValueError("bad cutoff"))

    with caplog.at_level(logging.ERROR, logger="tasks_api.services.csrf_sweeper"):
        await sweeper.start()
        for _ in range(50):
            if purge.call_count >= 2:
                break
            await asyncio.sleep(0.05)
        assert sweeper.running
        await sweeper.stop()

    assert purge.call_count >= 2
    assert "unexpected error" in caplog.text
    assert any(record.exc_info for record in caplog.records)
