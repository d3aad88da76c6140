"""
Tests for production environment validation.

Validates that production mode requires:
- ADMIN_API_KEY
- WHATSAPP_APP_SECRET
- DEMO_MODE=false
"""

import pytest
from fastapi.testclient import TestClient

from app.api.auth import get_admin_auth
from app.core.config import Settings
from app.main import app, validate_settings


def _production_settings(**overrides) -> Settings:
    values = {
        "app_env": "production",
        "whatsapp_verify_token": "test_token",
        "whatsapp_access_token": "test_token",
        "whatsapp_phone_number_id": "test_id",
        "whatsapp_app_secret": "test_app_secret",
        "admin_api_key": "test_admin_key",
        "demo_mode": False,
    }
    values.update(overrides)
    return Settings(**values)


def test_production_validation_passes_with_all_settings():
    validate_settings(_production_settings())


def test_production_validation_missing_admin_api_key():
    with pytest.raises(RuntimeError) as exc_info:
        validate_settings(_production_settings(admin_api_key=None))

    error_message = str(exc_info.value)
    assert "ADMIN_API_KEY is required in production" in error_message
    assert "Production environment validation failed" in error_message


def test_production_validation_missing_whatsapp_app_secret():
    with pytest.raises(RuntimeError) as exc_info:
        validate_settings(_production_settings(whatsapp_app_secret=None))
    assert "WHATSAPP_APP_SECRET is required in production" in str(exc_info.value)


def test_production_validation_demo_mode_enabled():
    with pytest.raises(RuntimeError) as exc_info:
        validate_settings(_production_settings(demo_mode=True))
    assert "DEMO_MODE must be False in production" in str(exc_info.value)


def test_production_validation_lists_every_problem():
    with pytest.raises(RuntimeError) as exc_info:
        validate_settings(_production_settings(admin_api_key=None, whatsapp_app_secret=None, demo_mode=True))

    error_message = str(exc_info.value)
    assert "ADMIN_API_KEY" in error_message
    assert "WHATSAPP_APP_SECRET" in error_message
    assert "DEMO_MODE" in error_message


def test_missing_whatsapp_credentials_fail_in_any_env():
    with pytest.raises(RuntimeError, match="WHATSAPP_ACCESS_TOKEN"):
        validate_settings(_production_settings(app_env="dev", whatsapp_access_token=""))


def test_dev_allows_missing_production_settings():
    validate_settings(_production_settings(app_env="dev", admin_api_key=None, whatsapp_app_secret=None, demo_mode=True))


def test_startup_fails_with_invalid_production_settings():
    previous = app.state.settings
    app.state.settings = _production_settings(admin_api_key=None)
    try:
        with pytest.raises(RuntimeError, match="Production environment validation failed"), TestClient(app):
            pass
    finally:
        app.state.settings = previous


def test_admin_auth_refuses_production_without_key():
    with pytest.raises(RuntimeError, match="ADMIN_API_KEY must be set"):
        get_admin_auth(api_key=None, settings=_production_settings(admin_api_key=None))
