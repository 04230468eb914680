"""Tests for the active role state under sequential and concurrent use."""

import threading

import pytest

from imds_switch.auth.role import Role
from imds_switch.errors import UnknownRoleError
from imds_switch.role_set import RoleSet
from imds_switch.state import ActiveRoleState


@pytest.fixture
def role_set(provider):
    return RoleSet(
        {
            alias: Role(arn=f"arn:aws:iam::111:role/{alias}", session_name=alias, provider=provider)
            for alias in ("dev", "staging", "prod")
        }
    )


@pytest.fixture
def state(role_set):
    return ActiveRoleState(role_set, "dev")


class TestActiveRoleState:
    def test_initial_alias_is_default(self, state):
        assert state.get() == "dev"

    def test_invalid_default_fails_construction(self, role_set):
        with pytest.raises(UnknownRoleError):
            ActiveRoleState(role_set, "missing")

    def test_set_then_get(self, state):
        state.set("prod")
        assert state.get() == "prod"

    def test_failed_set_leaves_alias_unchanged(self, state):
        state.set("staging")

        with pytest.raises(UnknownRoleError):
            state.set("nonexistent")

        assert state.get() == "staging"

    def test_set_does_not_fetch_credentials(self, state, provider):
        state.set("prod")
        assert provider.call_count == 0

    def test_set_is_visible_to_other_threads(self, state):
        state.set("prod")
        seen = []

        reader = threading.Thread(target=lambda: seen.append(state.get()))
        reader.start()
        reader.join(timeout=5)

        assert seen == ["prod"]

    def test_concurrent_readers_and_writers_only_see_valid_aliases(self, state, role_set):
        stop = threading.Event()
        observed = set()
        errors = []

        def reader():
            while not stop.is_set():
                observed.add(state.get())

        def writer(aliases):
            for _ in range(200):
                for alias in aliases:
                    try:
                        state.set(alias)
                    except UnknownRoleError:
                        errors.append(alias)

        readers = [threading.Thread(target=reader) for _ in range(4)]
        writers = [
            threading.Thread(target=writer, args=(["dev", "prod"],)),
            threading.Thread(target=writer, args=(["staging", "bogus"],)),
        ]
        for t in readers + writers:
            t.start()
        for t in writers:
            t.join(timeout=10)
        stop.set()
        for t in readers:
            t.join(timeout=5)

        assert observed <= set(role_set.roles())
        assert errors == ["bogus"] * 200
        assert state.get() in {"prod", "staging"}
