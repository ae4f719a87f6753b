"""Unit tests for main.py startup wiring.

Verifies that the entry point initializes the service, runs one health sweep
and always closes the service, even when initialization fails.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest


class TestMainStartup:
    """Tests for main() wiring."""

    @pytest.mark.asyncio
    @patch("mindsphere_ai.main.UnifiedAIService")
    @patch("mindsphere_ai.main.get_settings")
    @patch("mindsphere_ai.main.setup_logging")
    @patch("mindsphere_ai.main.get_logger")
    async def test_reports_provider_status(
        self,
        mock_get_logger,
        mock_setup_logging,
        mock_get_settings,
        mock_service_cls,
    ):
        """Every provider is logged once and the service is closed."""
        from mindsphere_ai.main import main

        settings = MagicMock()
        settings.environment = "test"
        settings.use_stub_adapter = True
        mock_get_settings.return_value = settings
        log = MagicMock()
        mock_get_logger.return_value = log

        service = MagicMock()
        service.initialize = AsyncMock()
        service.close = AsyncMock()
        service.health_monitor.check_all = AsyncMock(return_value=[])
        service.list_providers = AsyncMock(
            return_value=[{"name": "stub", "enabled": True}, {"name": "openai", "enabled": False}]
        )
        service.provider_health = AsyncMock(return_value=[{"provider": "stub", "healthy": True}])
        mock_service_cls.return_value = service

        await main()

        mock_setup_logging.assert_called_once()
        mock_service_cls.assert_called_once_with(settings)
        service.initialize.assert_awaited_once()
        service.health_monitor.check_all.assert_awaited_once()
        service.close.assert_awaited_once()

        events = [call.args[0] for call in log.info.call_args_list]
        assert events.count("provider_status") == 2
        assert events[0] == "starting_mindsphere_ai"
        assert events[-1] == "mindsphere_ai_stopped"

    @pytest.mark.asyncio
    @patch("mindsphere_ai.main.UnifiedAIService")
    @patch("mindsphere_ai.main.get_settings")
    @patch("mindsphere_ai.main.setup_logging")
    @patch("mindsphere_ai.main.get_logger")
    async def test_service_closed_on_failure(
        self,
        mock_get_logger,
        mock_setup_logging,
        mock_get_settings,
        mock_service_cls,
    ):
        from mindsphere_ai.main import main

        mock_get_settings.return_value = MagicMock()
        mock_get_logger.return_value = MagicMock()
        service = MagicMock()
        service.initialize = AsyncMock(side_effect=RuntimeError("boom"))
        service.close = AsyncMock()
        mock_service_cls.return_value = service

        with pytest.raises(RuntimeError, match="boom"):
            await main()

        service.close.assert_awaited_once()
