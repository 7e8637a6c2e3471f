"""Tests for animecatalog/lambda_handler.py — Lambda entry points."""

from unittest.mock import AsyncMock, patch

from mangum import Mangum

import animecatalog.lambda_handler as lambda_mod


def test_handler_wraps_app():
    assert isinstance(lambda_mod.handler, Mangum)


def test_scheduled_handler_runs_sync(override_settings):
    override_settings()
    with patch.object(lambda_mod, "setup_logging"), \
            patch.object(lambda_mod, "run_sync", new_callable=AsyncMock, return_value=7) as sync_spy:
        result = lambda_mod.scheduled_handler({"source": "aws.events"}, None)
    assert result == {"stored": 7}
    sync_spy.assert_awaited_once()
