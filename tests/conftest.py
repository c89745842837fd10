from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from ldap_auth import DirectoryAuthClient


def make_connection() -> MagicMock:
    conn = MagicMock(name="Connection()")
    conn.closed = False
    conn.result = {"result": 0, "description": "success", "message": ""}
    conn.response = []
    conn.rebind.return_value = True
    conn.search.return_value = False
    return conn


@pytest.fixture
def ldap_mocks():
    """Patch ldap3.Server/Connection inside the client; every Connection() is a fresh mock."""
    with patch("ldap_auth.client.Server") as server_cls, patch("ldap_auth.client.Connection") as conn_cls:
        conn_cls.side_effect = lambda *args, **kwargs: make_connection()
        yield server_cls, conn_cls


@pytest.fixture
def client(ldap_mocks):
    c = DirectoryAuthClient()
    yield c
    c.close()
