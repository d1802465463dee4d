"""Tests for the mod authorization gate."""
from types import SimpleNamespace

import pytest

from skirmish.checks import Actor, Gate, actor_from_interaction, is_privileged


@pytest.mark.parametrize(
    "roles, elevated, expected",
    [
        (set(), False, False),
        ({"1"}, False, False),
        ({"999"}, False, True),
        ({"1", "judge"}, False, True),
        (set(), True, True),
        ({"1"}, True, True),
    ],
)
def test_is_privileged(roles, elevated, expected):
    assert is_privileged("u1", roles, elevated, {"999", "judge"}) is expected


def test_no_privileged_roles_means_permission_only():
    assert is_privileged("u1", {"999"}, False, set()) is False
    assert is_privileged("u1", set(), True, set()) is True


def test_gate_normalizes_role_names():
    gate = Gate({"Judge ", "999", ""})
    assert gate.privileged_roles == frozenset({"judge", "999"})
    assert gate.allows(Actor(identity="u1", roles=frozenset({"judge"})))
    assert not gate.allows(Actor(identity="u1", roles=frozenset({"player"})))


def test_gate_defaults_to_config():
    gate = Gate()
    assert gate.privileged_roles == frozenset({"999", "judge"})


@pytest.mark.asyncio
async def test_actor_outside_a_server_is_never_privileged():
    interaction = SimpleNamespace(guild=None, user=SimpleNamespace(id=42))
    actor = await actor_from_interaction(interaction)
    assert actor == Actor(identity="42")
    assert not Gate().allows(actor)
