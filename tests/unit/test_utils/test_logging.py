"""Tests for logging configuration."""

import logging

from director_auth.utils.logging import REDACTED, RedactSecretsFilter, get_logging_config


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("director_auth.auth", logging.INFO, __file__, 1, "event", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRedactSecretsFilter:
    def test_masks_credential_fields(self):
        record = make_record(refresh_token="abc", password="Str0ng!Pass", user_id=7)

        assert RedactSecretsFilter().filter(record) is True
        assert record.refresh_token == REDACTED
        assert record.password == REDACTED
        assert record.user_id == 7

    def test_leaves_message_untouched(self):
        record = make_record()

        RedactSecretsFilter().filter(record)

        assert record.getMessage() == "event"
        assert not hasattr(record, "token")


class TestLoggingConfig:
    def test_security_events_get_their_own_file(self):
        config = get_logging_config()

        assert config["handlers"]["security_file"]["filename"].endswith("security.log")
        assert config["loggers"]["director_auth.auth"]["handlers"] == ["security_file"]

    def test_every_handler_redacts(self):
        config = get_logging_config()

        for handler in config["handlers"].values():
            assert "redact_secrets" in handler["filters"]
