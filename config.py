"""Configuration for the Skirmish bot."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Discord
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN", "")
# Server to register commands on directly, so they show up without waiting for global propagation
_guild_id = os.getenv("GUILD_ID", "").strip()
GUILD_ID = int(_guild_id) if _guild_id.isdigit() else None

# Database (the registry document lives in a single key/value row)
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'skirmish.db'}",
)
REGISTRY_KEY = os.getenv("REGISTRY_KEY", "current")

# JSON file written by the previous bot generation; imported once if the database is empty
LEGACY_DATA_PATH = Path(os.getenv("LEGACY_DATA_PATH", str(Path(__file__).parent / "skirmish-data.json")))


def _parse_bool(value: str, default: bool) -> bool:
    if not value:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# Players must be allowed by a mod before they can submit
REQUIRE_REGISTRATION = _parse_bool(os.getenv("REQUIRE_REGISTRATION", ""), True)


# Role IDs or names (comma-separated). Names are case-insensitive.
def _parse_role_ids(value: str) -> set[str]:
    if not value:
        return set()
    result = set()
    for x in value.split(","):
        x = x.strip()
        if x.isdigit():
            result.add(x)
    return result


def _parse_role_names(value: str) -> set[str]:
    if not value:
        return set()
    return {x.strip().lower() for x in value.split(",") if x.strip()}


MODERATOR_ROLE_IDS = _parse_role_ids(os.getenv("MODERATOR_ROLE_IDS", ""))
MODERATOR_ROLE_NAMES = _parse_role_names(os.getenv("MODERATOR_ROLE_NAMES", ""))

# Liveness endpoint (hosting platforms ping this)
HTTP_HOST = os.getenv("HTTP_HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
