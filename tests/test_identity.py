"""Tests for the in-memory identity provider."""

import pytest
from surveycore.errors import NotAuthenticated
from surveycore.identity import StaticIdentity


def test_require_user():
    identity = StaticIdentity("u1")
    assert identity.require_user() == "u1"
    identity.sign_out()
    with pytest.raises(NotAuthenticated):
        identity.require_user()


def test_session_change_notifications():
    identity = StaticIdentity()
    seen = []
    identity.on_change(seen.append)
    identity.sign_in("u1")
    identity.sign_in("u1")
    identity.sign_in("u2")
    identity.sign_out()
    assert seen == ["u1", "u2", None]
