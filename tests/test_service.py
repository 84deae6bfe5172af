"""
Tests for the SolverSDK lifecycle facade.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import solver_sdk
from solver_sdk.exceptions import ConfigurationError
from solver_sdk.router import MessageRouter, PUBLIC_TOPIC
from solver_sdk.service import SolverSDK, start
from solver_sdk.transport import LocalTransport
from tests.conftest import TEST_PRIV_KEY


class TestSolverSDK:

    @pytest.mark.asyncio
    async def test_start_reads_environment(self, handler, monkeypatch):
        monkeypatch.setenv("SOLVER_PRIVATE_KEY", TEST_PRIV_KEY)
        monkeypatch.delenv("WAKU_ENCRYPTION_PRIVATE_KEY", raising=False)
        monkeypatch.delenv("AVAILABLE_TYPES", raising=False)

        with patch("solver_sdk.config.load_dotenv") as mock_load_dotenv:
            sdk = await SolverSDK.start(handler)

        mock_load_dotenv.assert_called_once()
        assert isinstance(sdk, SolverSDK)
        assert sdk.router.initialized is True
        assert sdk.router.config.handler is handler
        await sdk.stop()

    @pytest.mark.asyncio
    async def test_start_fails_without_key(self, handler, monkeypatch):
        monkeypatch.delenv("SOLVER_PRIVATE_KEY", raising=False)
        with patch("solver_sdk.config.load_dotenv"):
            with pytest.raises(ConfigurationError):
                await SolverSDK.start(handler)

    @pytest.mark.asyncio
    async def test_start_with_config_and_transport(self, config):
        transport = LocalTransport()
        logger = MagicMock()
        sdk = await SolverSDK.start(config.handler, logger, config=config, transport=transport)

        assert sdk.router.transport is transport
        assert sdk.router.logger is logger
        assert PUBLIC_TOPIC in transport.subscriptions

    @pytest.mark.asyncio
    async def test_stop_delegates_to_router(self, config):
        router = MagicMock(spec=MessageRouter)
        router.stop = AsyncMock()
        await SolverSDK(router).stop()
        router.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_passes_through(self, config):
        with patch("solver_sdk.service.MessageRouter.start", new=AsyncMock()) as mock_start:
            sdk = await start(config.handler, config=config)
        mock_start.assert_awaited_once_with(config, transport=None, logger=None)
        assert sdk.router is mock_start.return_value

    def test_package_exports(self):
        assert solver_sdk.SolverSDK is SolverSDK
        assert isinstance(solver_sdk.__version__, str)
