from __future__ import annotations

import pytest

from pystromer.exceptions import StromerAuthenticationError
from pystromer.models.token import Credentials
from pystromer.session import TokenStore


def _credentials(token: str) -> Credentials:
    return Credentials(access_token=token, refresh_token="RT", expires_at=1000.0, client_id="cid")


def test_require_raises_when_empty() -> None:
    store = TokenStore()

    assert not store.is_authenticated
    with pytest.raises(StromerAuthenticationError, match="Not authenticated"):
        store.require()


def test_replace_and_clear_notify_listener() -> None:
    seen: list[Credentials | None] = []
    store = TokenStore(on_update=seen.append)
    first = _credentials("AT1")

    store.replace(first)
    store.clear()

    assert seen == [first, None]
    assert store.credentials is None


def test_listener_failure_does_not_block_swap() -> None:
    def _broken(_credentials: Credentials | None) -> None:
        raise RuntimeError("disk full")

    store = TokenStore(on_update=_broken)
    store.replace(_credentials("AT2"))

    assert store.require().access_token == "AT2"
