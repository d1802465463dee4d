"""Discord text and embeds for skirmish results and announcements."""
from __future__ import annotations

from typing import Iterable

import discord

from skirmish.models.registry import PlayerRecord
from skirmish.services.confirmation import CANCEL
from skirmish.services.notifier import REGISTRATION_APPROVED, REGISTRATION_REQUEST, Notice
from skirmish.services.results import Outcome, Result

EMBED_COLOUR = 0xFFC857
MESSAGE_LIMIT = 2000
ROSTER_HEADER = "**Summoner Skirmish Deck Overview**"

# Failures read the same whichever command hit them
_FAILURES = {
    Outcome.NOT_CONNECTED: (
        "You need to connect your Discord to your Riftbound Play Network Display Name first "
        "using `/skirmish connect <Display Name>`."
    ),
    Outcome.NOT_REGISTERED: (
        "You're not registered for this Skirmish yet. Use `/skirmish register` and wait for an organizer to approve you."
    ),
    Outcome.ALREADY_REGISTERED: "You're already registered for this Skirmish.",
    Outcome.INVALID_DISPLAY_NAME: "Please provide your Riftbound Play Network Display Name.",
    Outcome.INVALID_LINK: "Please provide a deck link.",
    Outcome.NO_CHANNEL_CONFIGURED: (
        "Decklist submissions channel has not been set up yet. Please talk to an organizer or judge."
    ),
    Outcome.INVALID_CHANNEL: (
        "Configured submissions channel is invalid. Please ask an organizer to run `/skirmish setsubmissions` again."
    ),
    Outcome.WRONG_CHANNEL_TYPE: "Please select a text channel.",
    Outcome.UNKNOWN_PROMPT: "This clear prompt has already been used or has expired.",
    Outcome.IDENTITY_MISMATCH: "You didn't start this clear action.",
    Outcome.STORE_UNAVAILABLE: (
        "The change was made but could not be saved. Please tell an organizer so it isn't lost on restart."
    ),
}

_UNAUTHORIZED = {
    "setsubmissions": "You don't have permission to configure Skirmish settings.",
    "allow": "You don't have permission to approve Skirmish players.",
    "remove": "You don't have permission to modify Skirmish submissions.",
    "reviewed": "You don't have permission to mark deck reviews.",
    "list": "You don't have permission to view Skirmish lists.",
    "clear": "You don't have permission to clear Skirmish data.",
}


def mention(identity: str) -> str:
    return f"<@{identity}>"


def outcome_message(result: Result) -> str:
    """User-facing reply for any result except a successful list (see ``roster_messages``)."""
    who = mention(result.target) if result.target else "That player"
    if result.outcome is Outcome.UNAUTHORIZED:
        return _UNAUTHORIZED.get(result.operation, "You don't have permission to do that.")
    if result.outcome is Outcome.NOT_SUBMITTED:
        return f"{who} has not submitted a decklist yet."
    if result.outcome is not Outcome.OK:
        return _FAILURES[result.outcome]

    op = result.operation
    if op == "connect":
        return f"Your Discord is now linked to **{result.record.display_name}** on the Riftbound Play Network."
    if op == "register":
        return "Registration request sent. An organizer will review it shortly."
    if op == "submit":
        return "Decklist received. Good luck, Summoner."
    if op == "setsubmissions":
        return f"Decklist submissions channel set to <#{result.channel_id}>."
    if op == "allow":
        return f"{who} is registered for this Skirmish." if result.changed else f"{who} was already registered."
    if op == "remove":
        if result.changed:
            return f"Cleared registration and deck submission for {who}."
        return f"{who} did not have a registration or deck submission recorded."
    if op == "reviewed":
        return f"Marked {who}'s deck as **{'reviewed' if result.reviewed else 'not reviewed'}**."
    if op == "clear":
        if result.prompt is not None:
            return (
                "This will clear **all tracked players and deck submissions** for the current Skirmish.\n"
                "Are you sure you want to do this?"
            )
        if result.action == CANCEL:
            return "Clear action cancelled."
        return "All tracked Skirmish players and deck submissions have been cleared."
    return "Done."


def _tick(value: bool) -> str:
    return "✅" if value else "❌"


def roster_line(identity: str, record: PlayerRecord) -> str:
    rpn = record.display_name or "—"
    if record.registered:
        registered = _tick(True)
    elif record.registration_requested:
        registered = "⏳"
    else:
        registered = _tick(False)
    link = f"`{record.deck_link}`" if record.deck_link else "—"  # code formatting suppresses previews
    return (
        f"{mention(identity)} ({rpn}) | Registered: {registered} | Submitted: {_tick(record.deck_submitted)} "
        f"| Reviewed: {_tick(record.deck_reviewed)} | Link: {link}"
    )


def roster_messages(entries: Iterable[tuple[str, PlayerRecord]]) -> list[str]:
    """Roster split into messages that fit Discord's length limit."""
    messages: list[str] = []
    current = ROSTER_HEADER + "\n"
    for identity, record in entries:
        line = roster_line(identity, record)
        if len(current) + len(line) + 1 > MESSAGE_LIMIT:
            messages.append(current.rstrip())
            current = ""
        current += "\n" + line
    if current.strip() == ROSTER_HEADER:
        return ["No players are known to the bot yet."]
    messages.append(current.strip())
    return messages


def build_notice_embed(notice: Notice) -> discord.Embed:
    """Announcement embed for the submissions channel."""
    if notice.kind == REGISTRATION_REQUEST:
        embed = discord.Embed(
            title="Registration Request",
            description="A player asked to join this Summoner Skirmish.",
            color=EMBED_COLOUR,
        )
    else:
        embed = discord.Embed(
            title="New Decklist Submitted",
            description="Piltover Archive deck submitted." if notice.looks_like_archive else "Deck link submitted.",
            color=EMBED_COLOUR,
        )
    embed.add_field(name="Player", value=mention(notice.actor_identity), inline=True)
    embed.add_field(name="RPN Display Name", value=notice.display_name or "_not set_", inline=True)
    if notice.link:
        embed.add_field(name="Link", value=notice.link, inline=False)
    embed.timestamp = discord.utils.utcnow()
    return embed


def direct_notice_text(notice: Notice) -> str:
    if notice.kind == REGISTRATION_APPROVED:
        return "You're registered for the Summoner Skirmish! Submit your deck with `/skirmish submit <link>`."
    return "Your Summoner Skirmish registration and deck submission were removed by an organizer."
