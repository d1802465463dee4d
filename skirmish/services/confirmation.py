"""Two-step confirmation for clearing every tracked player.

A prompt carries two tokens (confirm / cancel), each naming the action and the
mod who asked for it. Only that mod, still holding mod rights when they click,
can resolve it. A rejected click leaves the prompt open; a resolved prompt is gone.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Optional

from skirmish.services.results import Outcome

TOKEN_PREFIX = "skirmish:clear"
CONFIRM = "confirm"
CANCEL = "cancel"
ACTIONS = (CONFIRM, CANCEL)


def make_token(action: str, actor_identity: str, nonce: str) -> str:
    return f"{TOKEN_PREFIX}:{action}:{actor_identity}:{nonce}"


def parse_token(token: str) -> Optional[tuple[str, str, str]]:
    """Split a token into (action, actor identity, nonce), or None if it isn't one of ours."""
    if not token.startswith(TOKEN_PREFIX + ":"):
        return None
    # Identities are opaque and may hold ":" themselves; the nonce never does
    action, _, rest = token[len(TOKEN_PREFIX) + 1:].partition(":")
    actor_identity, _, nonce = rest.rpartition(":")
    if action not in ACTIONS or not actor_identity or not nonce:
        return None
    return action, actor_identity, nonce


@dataclass(frozen=True)
class ClearPrompt:
    nonce: str
    actor_identity: str

    @property
    def confirm_token(self) -> str:
        return make_token(CONFIRM, self.actor_identity, self.nonce)

    @property
    def cancel_token(self) -> str:
        return make_token(CANCEL, self.actor_identity, self.nonce)


class ConfirmationProtocol:
    """Open clear prompts, keyed by nonce. Expiry belongs to whoever shows the prompt (see ``discard``)."""

    def __init__(self):
        self._pending: dict[str, ClearPrompt] = {}

    def issue(self, actor_identity: str) -> ClearPrompt:
        prompt = ClearPrompt(nonce=secrets.token_hex(8), actor_identity=actor_identity)
        self._pending[prompt.nonce] = prompt
        return prompt

    def is_pending(self, nonce: str) -> bool:
        return nonce in self._pending

    def discard(self, nonce: str) -> None:
        self._pending.pop(nonce, None)

    def resolve(self, token: str, responder: str, still_privileged: bool) -> tuple[Outcome, Optional[str]]:
        """Check a click against its prompt. Returns (outcome, action); action is set only on OK.

        The prompt is closed only when the outcome is OK.
        """
        parsed = parse_token(token)
        if parsed is None:
            return Outcome.UNKNOWN_PROMPT, None
        action, actor_identity, nonce = parsed
        prompt = self._pending.get(nonce)
        if prompt is None or prompt.actor_identity != actor_identity:
            return Outcome.UNKNOWN_PROMPT, None
        if responder != actor_identity:
            return Outcome.IDENTITY_MISMATCH, None
        if not still_privileged:
            return Outcome.UNAUTHORIZED, None
        del self._pending[nonce]
        return Outcome.OK, action
