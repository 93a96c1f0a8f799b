"""Tests for structured logging with Logfire."""

import pytest
from unittest.mock import patch

from site_indexer.logging_config import (
    _logfire_level,
    mask_pii,
    redact_tokens,
    setup_logfire,
)


class TestMaskPii:
    def test_masks_middle(self):
        assert mask_pii("sk-1234567890") == "sk*********90"

    def test_short_values_fully_masked(self):
        assert mask_pii("abcd") == "****"

    def test_empty(self):
        assert mask_pii("") == ""
        assert mask_pii(None) == ""


class TestRedactTokens:
    def test_sensitive_keys_are_masked(self):
        redacted = redact_tokens(
            {
                "openai_api_key": "sk-abcdefgh",
                "chroma_token": "chroma-secret",
                "chroma_host": "localhost",
            }
        )

        assert redacted["openai_api_key"] == "sk*******gh"
        assert "secret" not in redacted["chroma_token"]
        assert redacted["chroma_host"] == "localhost"

    def test_nested_dicts_are_redacted(self):
        redacted = redact_tokens({"headers": {"Authorization": "Bearer abcdef"}})
        assert redacted["headers"]["Authorization"] == "Be*********ef"

    def test_non_string_values_untouched(self):
        redacted = redact_tokens({"logfire_token": None, "max_pages": 3})
        assert redacted == {"logfire_token": None, "max_pages": 3}

    def test_input_is_not_mutated(self):
        data = {"openai_api_key": "sk-abcdefgh"}
        redact_tokens(data)
        assert data == {"openai_api_key": "sk-abcdefgh"}


class TestSetupLogfire:
    def test_level_mapping(self):
        assert _logfire_level("WARNING") == "warn"
        assert _logfire_level("critical") == "fatal"
        assert _logfire_level("INFO") == "info"

    def test_configures_logfire_without_leaking_keys(self, mock_settings, logfire_capture):
        with patch("site_indexer.logging_config.logfire.configure") as mock_configure, patch(
            "site_indexer.logging_config.logfire.instrument_pydantic"
        ) as mock_instrument:
            setup_logfire(mock_settings)

        kwargs = mock_configure.call_args.kwargs
        assert kwargs["environment"] == "local"
        assert kwargs["send_to_logfire"] == "if-token-present"
        assert "token" not in kwargs
        mock_instrument.assert_called_once_with(record="failure")

        configured = [kw for level, args, kw in logfire_capture if args[0] == "Logging configured"]
        assert len(configured) == 1
        logged = configured[0]["settings"]
        assert logged["openai_api_key"] != "sk-test-key"
        assert logged["chroma_token"] != "chroma-secret-token"
        assert logged["chroma_host"] == "chroma.test"

    def test_token_is_passed_when_set(self, mock_settings):
        settings = mock_settings.model_copy(update={"logfire_token": "lf-token"})

        with patch("site_indexer.logging_config.logfire.configure") as mock_configure, patch(
            "site_indexer.logging_config.logfire.instrument_pydantic"
        ):
            setup_logfire(settings)

        assert mock_configure.call_args.kwargs["token"] == "lf-token"


@pytest.mark.asyncio
async def test_ingestion_logs_carry_url_context(
    make_page, make_fetcher, make_ingestor, logfire_capture
):
    """Crawler log records include the page URL as structured context."""
    fetcher = make_fetcher({"https://site.test/": make_page(body="hello")})

    await make_ingestor(fetcher).ingest("https://site.test/")

    ingesting = [kw for level, args, kw in logfire_capture if args[0] == "Ingesting success"]
    assert ingesting == [
        {"url": "https://site.test/", "chunk_count": 1, "internal_links": 0}
    ]
