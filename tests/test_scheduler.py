from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bots.scheduler import PeriodicRefresher


@pytest.mark.asyncio
async def test_run_once_invokes_callback():
    callback = AsyncMock()
    refresher = PeriodicRefresher("feed", callback, minutes=15)

    await refresher.run_once()

    callback.assert_awaited_once()
    assert refresher.failures == 0


@pytest.mark.asyncio
async def test_failing_tick_is_logged_and_counted():
    callback = AsyncMock(side_effect=RuntimeError("boom"))
    refresher = PeriodicRefresher("feed", callback)

    with patch("bots.scheduler.log") as mock_log:
        await refresher.run_once()
        await refresher.run_once()

    assert refresher.failures == 2
    mock_log.exception.assert_called_with("%s refresh failed", "feed")


@pytest.mark.asyncio
async def test_before_start_hook_is_awaited():
    before = AsyncMock()
    refresher = PeriodicRefresher("feed", AsyncMock(), before_start=before)

    await refresher._wait_before_start()

    before.assert_awaited_once()


@pytest.mark.asyncio
async def test_without_before_start_hook():
    refresher = PeriodicRefresher("feed", AsyncMock())

    await refresher._wait_before_start()


def test_start_and_stop_are_idempotent():
    refresher = PeriodicRefresher("feed", AsyncMock(), minutes=5)
    loop = MagicMock()
    loop.is_running.return_value = False
    refresher._loop = loop

    refresher.start()
    loop.start.assert_called_once()
    refresher.stop()
    loop.cancel.assert_not_called()

    loop.is_running.return_value = True
    refresher.start()
    loop.start.assert_called_once()
    assert refresher.running is True
    refresher.stop()
    loop.cancel.assert_called_once()


def test_loop_interval_matches_minutes():
    refresher = PeriodicRefresher("feed", AsyncMock(), minutes=30)

    assert refresher._loop.minutes == 30
