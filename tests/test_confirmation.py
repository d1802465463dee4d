"""Tests for the clear confirmation flow."""
import pytest

from conftest import MOD, OTHER_MOD, PLAYER
from skirmish.checks import Actor
from skirmish.services.confirmation import CANCEL, CONFIRM, ConfirmationProtocol, make_token, parse_token
from skirmish.services.lifecycle import ChannelRef
from skirmish.services.results import Category, Outcome
from skirmish.services.schema import encode_document

DEMOTED_MOD = Actor(identity=MOD.identity)


async def _populate(lifecycle):
    for identity in ("u1", "u2", "u3"):
        await lifecycle.connect(Actor(identity=identity), identity)
    await lifecycle.allow(MOD, "u1")


def test_token_round_trip():
    token = make_token(CONFIRM, "123", "abc")
    assert parse_token(token) == (CONFIRM, "123", "abc")


@pytest.mark.parametrize(
    "token",
    ["", "skirmish:clear", "skirmish:clear:explode:1:n", "skirmish:clear:confirm::n", "other:clear:confirm:1:n"],
)
def test_bad_tokens(token):
    assert parse_token(token) is None


def test_prompts_are_distinct():
    protocol = ConfirmationProtocol()
    a = protocol.issue("1")
    b = protocol.issue("1")
    assert a.nonce != b.nonce
    assert a.confirm_token != b.confirm_token
    assert a.confirm_token.endswith(f":1:{a.nonce}")


@pytest.mark.asyncio
async def test_prompt_does_not_clear(lifecycle):
    await _populate(lifecycle)
    result = await lifecycle.request_clear(MOD)
    assert result.ok
    assert result.prompt.actor_identity == MOD.identity
    assert len(lifecycle.registry.players) == 3


@pytest.mark.asyncio
async def test_confirm_clears_everything(lifecycle, store):
    await _populate(lifecycle)
    prompt = (await lifecycle.request_clear(MOD)).prompt

    result = await lifecycle.resolve_clear(MOD, prompt.confirm_token)
    assert result.ok
    assert result.action == CONFIRM
    assert result.cleared == 3
    assert lifecycle.registry.players == {}
    assert (await store.load()).players == {}


@pytest.mark.asyncio
async def test_clear_keeps_submissions_channel(lifecycle, store):
    await lifecycle.set_submissions_channel(MOD, ChannelRef(id="100", text_capable=True))
    prompt = (await lifecycle.request_clear(MOD)).prompt
    await lifecycle.resolve_clear(MOD, prompt.confirm_token)
    assert (await store.load()).config.submissions_channel_id == "100"


@pytest.mark.asyncio
async def test_cancel_changes_nothing(lifecycle):
    await _populate(lifecycle)
    before = encode_document(lifecycle.registry)
    prompt = (await lifecycle.request_clear(MOD)).prompt

    result = await lifecycle.resolve_clear(MOD, prompt.cancel_token)
    assert result.ok
    assert result.action == CANCEL
    assert encode_document(lifecycle.registry) == before
    assert not lifecycle.confirmations.is_pending(prompt.nonce)


@pytest.mark.asyncio
async def test_other_actor_cannot_confirm(lifecycle):
    await _populate(lifecycle)
    before = encode_document(lifecycle.registry)
    prompt = (await lifecycle.request_clear(MOD)).prompt

    for actor in (OTHER_MOD, PLAYER):
        result = await lifecycle.resolve_clear(actor, prompt.confirm_token)
        assert result.outcome is Outcome.IDENTITY_MISMATCH
        assert result.outcome.category is Category.IDENTITY_MISMATCH
    assert encode_document(lifecycle.registry) == before

    # Still open for the mod who asked
    assert lifecycle.confirmations.is_pending(prompt.nonce)
    assert (await lifecycle.resolve_clear(MOD, prompt.confirm_token)).ok
    assert lifecycle.registry.players == {}


@pytest.mark.asyncio
async def test_forged_token_for_other_actor(lifecycle):
    """A token rewritten to name someone else does not match the open prompt."""
    await _populate(lifecycle)
    prompt = (await lifecycle.request_clear(MOD)).prompt
    forged = make_token(CONFIRM, OTHER_MOD.identity, prompt.nonce)

    result = await lifecycle.resolve_clear(OTHER_MOD, forged)
    assert result.outcome is Outcome.UNKNOWN_PROMPT
    assert len(lifecycle.registry.players) == 3
    assert lifecycle.confirmations.is_pending(prompt.nonce)


@pytest.mark.asyncio
async def test_privilege_rechecked_at_resolution(lifecycle):
    await _populate(lifecycle)
    prompt = (await lifecycle.request_clear(MOD)).prompt

    result = await lifecycle.resolve_clear(DEMOTED_MOD, prompt.confirm_token)
    assert result.outcome is Outcome.UNAUTHORIZED
    assert len(lifecycle.registry.players) == 3
    assert lifecycle.confirmations.is_pending(prompt.nonce)


@pytest.mark.asyncio
async def test_resolved_prompt_cannot_be_reused(lifecycle):
    await _populate(lifecycle)
    prompt = (await lifecycle.request_clear(MOD)).prompt
    assert (await lifecycle.resolve_clear(MOD, prompt.confirm_token)).ok

    await lifecycle.connect(PLAYER, "Ari")
    for token in (prompt.confirm_token, prompt.cancel_token):
        again = await lifecycle.resolve_clear(MOD, token)
        assert again.outcome is Outcome.UNKNOWN_PROMPT
    assert "u1" in lifecycle.registry.players


@pytest.mark.asyncio
async def test_discarded_prompt_is_dead(lifecycle):
    await _populate(lifecycle)
    prompt = (await lifecycle.request_clear(MOD)).prompt
    lifecycle.confirmations.discard(prompt.nonce)
    result = await lifecycle.resolve_clear(MOD, prompt.confirm_token)
    assert result.outcome is Outcome.UNKNOWN_PROMPT
    assert len(lifecycle.registry.players) == 3

def test_token_round_trip_with_colon_in_identity():
    token = make_token(CANCEL, "guild:42", "abc")
    assert parse_token(token) == (CANCEL, "guild:42", "abc")


@pytest.mark.asyncio
async def test_identity_with_colon_can_confirm_own_prompt(lifecycle):
    await _populate(lifecycle)
    actor = Actor(identity="guild:42", elevated=True)
    prompt = (await lifecycle.request_clear(actor)).prompt

    result = await lifecycle.resolve_clear(actor, prompt.confirm_token)
    assert result.ok
    assert result.cleared == 3
    assert lifecycle.registry.players == {}
