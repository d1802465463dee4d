"""Durable storage for the registry document."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import config
from skirmish.models.base import async_session_factory
from skirmish.models.document import RegistryDocument
from skirmish.models.registry import Registry
from skirmish.services.schema import decode_document, encode_document

logger = logging.getLogger("skirmish.store")


class StoreUnavailable(Exception):
    """Writing the registry document failed."""


class RegistryStore:
    """Loads and saves the whole registry as one row.

    ``load`` always returns a usable registry. ``save`` raises ``StoreUnavailable``
    on failure; the previous row survives because the write is a single transaction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
        key: str = config.REGISTRY_KEY,
        legacy_path: Optional[Path] = config.LEGACY_DATA_PATH,
    ):
        self._session_factory = session_factory
        self.key = key
        self.legacy_path = legacy_path

    async def load(self) -> Registry:
        try:
            async with self._session_factory() as session:
                row = await session.get(RegistryDocument, self.key)
        except Exception:
            logger.exception("Could not read registry document %r - starting with an empty registry", self.key)
            return Registry()

        if row is not None:
            return decode_document(row.payload, source=f"registry document {self.key!r}")
        return self._load_legacy_file()

    def _load_legacy_file(self) -> Registry:
        """One-time import of the JSON file the old bot kept next to itself."""
        if self.legacy_path is None or not self.legacy_path.is_file():
            return Registry()
        try:
            raw = self.legacy_path.read_bytes()
        except OSError as e:
            logger.warning("Could not read legacy data file %s: %s", self.legacy_path, e)
            return Registry()
        logger.info("No registry document yet - importing %s", self.legacy_path)
        return decode_document(raw, source=str(self.legacy_path))

    async def save(self, registry: Registry) -> None:
        payload = encode_document(registry)
        try:
            async with self._session_factory() as session:
                await session.merge(
                    RegistryDocument(
                        key=self.key,
                        payload=payload,
                        updated_at=datetime.now(timezone.utc),
                    )
                )
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(f"Could not save registry document {self.key!r}: {e}") from e
