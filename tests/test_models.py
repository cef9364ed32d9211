"""Tests for configuration models."""

import pytest

from odds_service.config import DEFAULT_SPORTS
from odds_service.errors import ErrorCode, OddsAPIError
from odds_service.models import OddsConfiguration, SportConfig


@pytest.mark.parametrize(
    "value,expected",
    [(0, 1), (-5, 1), (1, 1), (45, 45), (3600, 3600), (99999, 3600), ("120", 120), ("abc", 30), (None, 30)],
)
def test_refresh_interval_is_clamped(value, expected):
    assert SportConfig(enabled=True, refresh_interval=value).refresh_interval == expected


def test_enabled_is_coerced_to_bool():
    assert SportConfig(enabled=0, refreshInterval=10).enabled is False
    assert SportConfig(enabled="yes", refreshInterval=10).enabled is True


def test_default_configuration():
    config = OddsConfiguration()
    assert config.api_key == ""
    assert config.is_active is False
    assert set(config.sports) == set(DEFAULT_SPORTS)


def test_document_uses_persisted_field_names():
    document = OddsConfiguration(api_key="abc").to_document()
    assert document["apiKey"] == "abc"
    assert document["isActive"] is False
    assert "lastUpdated" in document
    assert document["sports"]["soccer_epl"] == {"enabled": True, "refreshInterval": 30}


@pytest.mark.parametrize("code", list(ErrorCode))
def test_every_error_kind_has_a_message(code):
    error = OddsAPIError(code)
    assert error.message
    assert str(error) == error.message


def test_only_disabled_sport_is_not_retryable():
    assert OddsAPIError(ErrorCode.SPORT_DISABLED).retryable is False
    assert OddsAPIError(ErrorCode.API_RATE_LIMIT).retryable is True


@pytest.mark.parametrize(
    "status_code,code",
    [
        (401, ErrorCode.API_KEY_INVALID),
        (404, ErrorCode.RESOURCE_NOT_FOUND),
        (429, ErrorCode.API_RATE_LIMIT),
        (500, ErrorCode.API_CONNECTION_ERROR),
        (422, ErrorCode.API_CONNECTION_ERROR),
    ],
)
def test_status_code_classification(status_code, code):
    error = OddsAPIError.from_status(status_code)
    assert error.code is code
    assert error.status_code == status_code
