import logging
from unittest.mock import AsyncMock

from ledgersync.engine.context import CancellationToken, SyncContext, log_progress


class TestCancellationToken:
    def test_starts_uncancelled(self):
        token = CancellationToken()

        assert not token.cancelled
        assert token.reason == "Sync cancelled"

    def test_cancel_with_reason(self):
        token = CancellationToken()
        token.cancel("Connection deleted")

        assert token.cancelled
        assert token.reason == "Connection deleted"

    def test_cancel_without_reason_keeps_default(self):
        token = CancellationToken()
        token.cancel()

        assert token.cancelled
        assert token.reason == "Sync cancelled"


class TestSyncContext:
    async def test_report_forwards_percent_and_message(self):
        progress = AsyncMock()
        ctx = SyncContext(progress=progress)

        await ctx.report("Fetching deposits", 15)

        progress.assert_awaited_once_with((15, "Fetching deposits"))

    async def test_debug_report_only_in_debug_mode(self):
        progress = AsyncMock()

        await SyncContext(progress=progress).debug_report("window")
        progress.assert_not_awaited()

        await SyncContext(progress=progress, debug=True).debug_report("window")
        progress.assert_awaited_once_with((None, "window"))

    def test_cancelled_mirrors_token(self):
        ctx = SyncContext()
        ctx.token.cancel()
        assert ctx.cancelled

    async def test_log_progress_writes_to_logger(self, caplog):
        with caplog.at_level(logging.INFO, logger="ledgersync.engine.context"):
            await log_progress((50, "Extracting transactions"))
            await log_progress((None, "Parsing row 1000"))

        assert "[ 50%] Extracting transactions" in caplog.text
        assert "Parsing row 1000" in caplog.text
