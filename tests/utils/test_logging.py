from unittest.mock import MagicMock, patch

import pytest

from src.utils.errors import NotFoundError, SessionStoreError
from src.utils.logging import configure_logging, get_logger, log_error, redact_secrets


@pytest.mark.parametrize(
    "environment,renderer",
    [
        ("development", "dev.ConsoleRenderer"),
        ("Development", "dev.ConsoleRenderer"),
        ("production", "processors.JSONRenderer"),
    ],
)
@patch("src.utils.logging.structlog")
@patch("src.utils.logging.logging")
@patch("src.utils.logging.settings")
def test_configure_logging_picks_renderer(mock_settings, mock_logging, mock_structlog, environment, renderer):
    mock_settings.LOG_LEVEL = "info"
    mock_settings.ENVIRONMENT = environment

    configure_logging()

    _args, kwargs = mock_logging.basicConfig.call_args
    assert kwargs["level"] == mock_logging.INFO
    processors = mock_structlog.configure.call_args[1]["processors"]
    module, name = renderer.split(".")
    assert processors[-1] is getattr(getattr(mock_structlog, module), name).return_value


@patch("src.utils.logging.structlog")
def test_get_logger_binds_context(mock_structlog):
    logger = get_logger("src.services.swipe_service", swiper_id=1)

    mock_structlog.get_logger.assert_called_with("src.services.swipe_service")
    mock_structlog.get_logger.return_value.bind.assert_called_with(swiper_id=1)
    assert logger is mock_structlog.get_logger.return_value.bind.return_value


def test_log_error_includes_service_details():
    mock_logger = MagicMock()
    error = SessionStoreError("redis down", details={"operation": "start_session"})

    log_error(mock_logger, error, "Failed to start session", {"profile_id": 7})

    args, kwargs = mock_logger.error.call_args
    assert args[0] == "Failed to start session"
    assert kwargs["profile_id"] == 7
    assert kwargs["error_type"] == "SessionStoreError"
    assert kwargs["error_message"] == "redis down"
    assert kwargs["error_details"] == {"operation": "start_session", "service": "session_store"}
    assert kwargs["exc_info"] is error


def test_log_error_defaults():
    mock_logger = MagicMock()

    log_error(mock_logger, KeyError("token"))

    args, kwargs = mock_logger.error.call_args
    assert args[0] == "An error occurred"
    assert "error_details" not in kwargs


def test_log_error_does_not_mutate_extra():
    mock_logger = MagicMock()
    extra = {"email": "user1@mail.com"}

    log_error(mock_logger, NotFoundError("profile not found"), extra=extra)

    assert extra == {"email": "user1@mail.com"}


def test_log_error_includes_status_code():
    mock_logger = MagicMock()

    log_error(mock_logger, NotFoundError("profile not found"))

    assert mock_logger.error.call_args[1]["status_code"] == 404


def test_redact_secrets_masks_credentials():
    event = {"event": "Login failed", "password": "hunter2", "Authorization": "abc", "token": "", "profile_id": 3}

    redacted = redact_secrets(None, "info", event)

    assert redacted == {
        "event": "Login failed",
        "password": "***",
        "Authorization": "***",
        "token": "",
        "profile_id": 3,
    }


@patch("src.utils.logging.structlog")
@patch("src.utils.logging.logging")
@patch("src.utils.logging.settings")
def test_configure_logging_redacts_before_rendering(mock_settings, mock_logging, mock_structlog):
    mock_settings.LOG_LEVEL = "DEBUG"
    mock_settings.ENVIRONMENT = "production"
    mock_settings.APP_NAME = "TinyDates"

    configure_logging()

    processors = mock_structlog.configure.call_args[1]["processors"]
    assert processors.index(redact_secrets) == len(processors) - 2
    mock_structlog.contextvars.bind_contextvars.assert_called_once_with(app="TinyDates", environment="production")
