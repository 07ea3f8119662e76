from __future__ import annotations

from fleetview._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "pageSize": 300,
        "key": "AIza-secret",
        "Authorization": "Bearer abc",
        "password": "pw",
        "nested": {"authToken": "tok", "model": "Transit 350"},
    }

    redacted = redact_for_log(payload)
    assert redacted["pageSize"] == 300
    assert redacted["key"] == "<redacted>"
    assert redacted["Authorization"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["nested"]["authToken"] == "<redacted>"
    assert redacted["nested"]["model"] == "Transit 350"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_walks_lists_and_bytes() -> None:
    redacted = redact_for_log({"writes": [{"token": "t"}, b"\x00\x01"]})
    assert redacted["writes"] == [{"token": "<redacted>"}, "<bytes:2b>"]


def test_redact_for_log_masks_inline_secrets() -> None:
    message = "GET https://firestore.googleapis.com/v1/x?pageSize=2&key=AIza123 failed, Bearer eyJhbGc"
    redacted = redact_for_log(message)
    assert "AIza123" not in redacted
    assert "eyJhbGc" not in redacted
    assert "pageSize=2" in redacted


def test_redact_for_log_normalizes_key_spelling() -> None:
    redacted = redact_for_log({"api-key": "k", "Auth_Token": "t", "keyword": "kept"})
    assert redacted == {"api-key": "<redacted>", "Auth_Token": "<redacted>", "keyword": "kept"}
