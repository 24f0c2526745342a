from __future__ import annotations

from pystromer._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "grant_type": "refresh_token",
        "refresh_token": "RT",
        "client_secret": "SECRET",
        "password": "pw",
        "nested": {"access_token": "AT", "Authorization": "Bearer AT"},
        "bikes": [{"bikeid": 42, "token": "T"}],
    }

    redacted = redact_for_log(payload)
    assert redacted["grant_type"] == "refresh_token"
    assert redacted["refresh_token"] == "<redacted>"
    assert redacted["client_secret"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["nested"]["access_token"] == "<redacted>"
    assert redacted["nested"]["Authorization"] == "<redacted>"
    assert redacted["bikes"][0] == {"bikeid": 42, "token": "<redacted>"}


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_matches_secret_key_spellings() -> None:
    payload = {"refreshToken": "RT", "Client-Secret": "S", "access_token": "AT", "tokens_left": 3}

    assert redact_for_log(payload) == {
        "refreshToken": "<redacted>",
        "Client-Secret": "<redacted>",
        "access_token": "<redacted>",
        "tokens_left": 3,
    }


def test_redact_for_log_summarises_non_json_values() -> None:
    assert redact_for_log(b"\x00\x01\x02") == "<bytes:3b>"
    assert redact_for_log((1, "a")) == [1, "a"]
    assert redact_for_log({"when": {1, 2}}, max_string=4)["when"].endswith("<truncated>")
