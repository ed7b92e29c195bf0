"""
Tests for logging helpers

Tests cover:
- Masking of AUTH payloads, passwords and addresses
- JSON formatting of extras
- SMTP transcript handler
- Context bound to a logger adapter
"""
import json
import logging

import pytest

from src.utils.logging import (
    JSONFormatter,
    SensitiveDataFilter,
    SensitiveDataMasker,
    get_logger,
    init_logging,
)
from src.utils.paths import LOGS_DIR


def make_record(msg, args=None, **extra):
    record = logging.makeLogRecord(
        {"name": "glance.test", "levelno": logging.INFO, "levelname": "INFO", "msg": msg, "args": args}
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestSensitiveDataMasker:
    """Tests for text and field masking"""

    @pytest.fixture
    def masker(self):
        return SensitiveDataMasker()

    def test_auth_initial_response(self, masker):
        assert masker.mask_string("C: AUTH PLAIN AHVzZXIAcGFzcw==") == "C: AUTH PLAIN [REDACTED]"

    def test_bare_auth_login_untouched(self, masker):
        assert masker.mask_string("C: AUTH LOGIN") == "C: AUTH LOGIN"
        assert masker.mask_string("S: 250-AUTH LOGIN PLAIN") == "S: 250-AUTH LOGIN PLAIN"

    def test_password_assignment(self, masker):
        assert masker.mask_string("password=hunter2 port=465") == "password=[REDACTED] port=465"

    def test_address_keeps_domain(self, masker):
        assert masker.mask_string("C: RCPT TO:<alice@example.com>") == "C: RCPT TO:<a***@example.com>"

    def test_fields(self, masker):
        assert masker.mask_value("password", "hunter2") == "[REDACTED]"
        assert masker.mask_value("username", "alice@example.com") == "a***@example.com"
        assert masker.mask_value("details", {"address": "bob@example.com", "port": 465}) == {
            "address": "b***@example.com",
            "port": 465,
        }

    def test_masking_is_stable(self, masker):
        once = masker.mask_string("alice@example.com password: x")
        assert masker.mask_string(once) == once


def test_filter_masks_message_args_and_extras():
    record = make_record("Login as %s", ("alice@example.com",), password="hunter2", server="smtp.example.com")

    assert SensitiveDataFilter().filter(record) is True
    assert record.getMessage() == "Login as a***@example.com"
    assert record.password == "[REDACTED]"
    assert record.server == "smtp.example.com"


def test_json_formatter_lifts_stage():
    record = make_record("S: 250 OK", stage="ehlo", server="smtp.example.com")

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "S: 250 OK"
    assert entry["stage"] == "ehlo"
    assert entry["context"] == {"server": "smtp.example.com"}
    assert entry["logger"] == "glance.test"


def test_invalid_level_rejected():
    with pytest.raises(ValueError):
        init_logging().set_level("chatty")


def test_smtp_transcript():
    manager = init_logging()
    manager.set_smtp_transcript(True)
    try:
        get_logger("src.core.email.smtp.protocol").debug(
            "C: RCPT TO:<alice@example.com>", extra={"stage": "rcpt_rejected"}
        )
        get_logger("src.core.models.report").debug("not protocol")
        for handler in manager.root_logger.handlers:
            handler.flush()
    finally:
        manager.set_smtp_transcript(False)

    transcript = (LOGS_DIR / "smtp.log").read_text(encoding="utf-8")
    assert "[rcpt_rejected] C: RCPT TO:<a***@example.com>" in transcript
    assert "not protocol" not in transcript


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__(logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_bound_context_reaches_records():
    adapter = get_logger("src.core.email.smtp.client", server="smtp.example.com", port=465)
    capture = _Capture()
    adapter.logger.addHandler(capture)
    try:
        adapter.info("Sending email", extra={"recipients": 2})
        adapter.info("Override", extra={"port": 587})
    finally:
        adapter.logger.removeHandler(capture)

    first, second = capture.records
    assert (first.server, first.port, first.recipients) == ("smtp.example.com", 465, 2)
    assert second.port == 587


def test_plain_logger_without_context():
    assert isinstance(get_logger("src.core.models.report"), logging.Logger)
