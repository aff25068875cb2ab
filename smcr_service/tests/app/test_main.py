import pytest
from unittest.mock import patch, AsyncMock, MagicMock
from fastapi import FastAPI
import httpx

# Bound before any @patch replaces httpx.AsyncClient, so it can serve as a spec.
REAL_ASYNC_CLIENT = httpx.AsyncClient

from smcr_service.app.main import startup_event, shutdown_event
from smcr_service.app.config import settings
from smcr_service.app.service.verification import VerificationRunner


@pytest.fixture
def mock_app():
    """A FastAPI app whose state accepts arbitrary attributes."""
    app = FastAPI()
    app.state = MagicMock()
    if hasattr(app.state, 'http_client'):
        del app.state.http_client
    app.state.verification_runner = MagicMock(spec=VerificationRunner)
    return app

@pytest.mark.asyncio
@patch('smcr_service.app.main.httpx.AsyncClient')
@patch('smcr_service.app.main.HTTPXClientInstrumentor')
@patch('smcr_service.app.main.SmcrApiClient')
@patch('smcr_service.app.main.FcaRegisterClient')
@patch('smcr_service.app.main.SmcrDataStore')
@patch('smcr_service.app.main.logger')
async def test_startup_event_success(
    mock_logger,
    mock_store_cls,
    mock_register_cls,
    mock_api_cls,
    mock_httpx_instrumentor,
    mock_async_client_constructor,
    mock_app
):
    mock_async_client_instance = AsyncMock(spec=REAL_ASYNC_CLIENT)
    mock_async_client_constructor.return_value = mock_async_client_instance
    mock_store = MagicMock()
    mock_store.load_firms = AsyncMock()
    mock_store.active_firm_id = "firm-1"
    mock_store_cls.return_value = mock_store

    with patch('smcr_service.app.main.app', mock_app):
        await startup_event()

    mock_async_client_constructor.assert_called_once_with(
        base_url=settings.SMCR_API_BASE_URL, timeout=settings.DEFAULT_HTTP_TIMEOUT
    )
    assert mock_app.state.http_client == mock_async_client_instance
    mock_httpx_instrumentor.return_value.instrument.assert_called_once()

    mock_api_cls.assert_called_once_with(mock_async_client_instance)
    mock_register_cls.assert_called_once_with(mock_async_client_instance)
    mock_store_cls.assert_called_once_with(mock_api_cls.return_value, register_client=mock_register_cls.return_value)
    assert mock_app.state.store is mock_store
    mock_store.load_firms.assert_awaited_once()

    mock_logger.info.assert_any_call("FastAPI application startup...")
    mock_logger.info.assert_any_call("Workspace store initialised; active firm is firm-1.")


@pytest.mark.asyncio
@patch('smcr_service.app.main.httpx.AsyncClient')
@patch('smcr_service.app.main.HTTPXClientInstrumentor')
@patch('smcr_service.app.main.SmcrDataStore')
@patch('smcr_service.app.main.logger')
async def test_startup_event_initial_load_failure(
    mock_logger,
    mock_store_cls,
    mock_httpx_instrumentor,
    mock_async_client_constructor,
    mock_app
):
    mock_async_client_constructor.return_value = AsyncMock(spec=REAL_ASYNC_CLIENT)
    mock_store_cls.return_value.load_firms = AsyncMock(side_effect=Exception("backend unreachable"))

    with patch('smcr_service.app.main.app', mock_app):
        await startup_event()

    # The client is still created so the service can serve health checks
    mock_async_client_constructor.assert_called_once()
    mock_httpx_instrumentor.return_value.instrument.assert_called_once()
    mock_logger.error.assert_called_once()
    log_message = mock_logger.error.call_args[0][0]
    assert "Failed during startup: backend unreachable" in log_message


@pytest.mark.asyncio
@patch('smcr_service.app.main.logger')
async def test_shutdown_event_success(mock_logger, mock_app):
    mock_http_client_instance = AsyncMock(spec=httpx.AsyncClient)
    mock_app.state.http_client = mock_http_client_instance
    mock_app.state.verification_runner.cancel.return_value = True

    with patch('smcr_service.app.main.app', mock_app):
        await shutdown_event()

    mock_http_client_instance.aclose.assert_called_once()
    mock_app.state.verification_runner.cancel.assert_called_once()
    mock_logger.info.assert_any_call("FastAPI application shutdown...")
    mock_logger.info.assert_any_call("Cancelled in-progress re-verification run.")
    mock_logger.info.assert_any_call("HTTPX AsyncClient closed.")


@pytest.mark.asyncio
@patch('smcr_service.app.main.logger')
async def test_shutdown_event_no_http_client(mock_logger, mock_app):
    if hasattr(mock_app.state, 'http_client'):
        del mock_app.state.http_client
    mock_app.state.verification_runner.cancel.return_value = False

    with patch('smcr_service.app.main.app', mock_app):
        await shutdown_event()

    log_info_calls = [call_args[0][0] for call_args in mock_logger.info.call_args_list]
    assert "HTTPX AsyncClient closed." not in log_info_calls
    assert "Cancelled in-progress re-verification run." not in log_info_calls
    assert "FastAPI application shutdown..." in log_info_calls
