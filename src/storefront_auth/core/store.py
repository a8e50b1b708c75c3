"""Credential store.

Durable mapping from shop domain to its OAuth credentials, backed by the
``shops`` table. Writes go through a single ``INSERT ... ON CONFLICT DO UPDATE``
statement so concurrent installs for the same shop never interleave, and
``installed_at`` is only ever written by the insert branch.
"""

import logging
from datetime import UTC, datetime
from typing import Callable

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from storefront_auth.core.errors import StorageUnavailable
from storefront_auth.core.models import CredentialRecord, ShopCredentials, ShopSummary

logger = logging.getLogger("store")

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CredentialStore:
    """Shop-keyed store for OAuth credentials."""

    def __init__(
        self,
        session_factory: sessionmaker,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    def _session(self) -> Session:
        return self._session_factory()

    def upsert(self, shop: str, access_token: str, scope: str) -> None:
        """
        Insert or overwrite the credentials for ``shop``.

        Overwrites the token, scope and ``updated_at`` of an existing record
        and keeps its ``installed_at``.

        Raises:
            StorageUnavailable: If the database cannot be reached or the write fails.
        """
        now = self._clock()
        try:
            with self._session() as db:
                dialect = db.get_bind().dialect.name
                insert = _UPSERT_DIALECTS.get(dialect)
                if insert is None:
                    raise StorageUnavailable(
                        f"Unsupported database dialect: {dialect}", shop=shop
                    )
                statement = insert(ShopCredentials).values(
                    shop=shop,
                    access_token=access_token,
                    scope=scope,
                    installed_at=now,
                    updated_at=now,
                )
                statement = statement.on_conflict_do_update(
                    index_elements=[ShopCredentials.shop],
                    set_={
                        "access_token": statement.excluded.access_token,
                        "scope": statement.excluded.scope,
                        "updated_at": statement.excluded.updated_at,
                    },
                )
                db.execute(statement)
                db.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"upsert failed: {type(e).__name__}", shop=shop) from e

        logger.info("Credentials stored for shop: %s", shop)

    def get(self, shop: str) -> CredentialRecord | None:
        """Return the credentials for ``shop``, or None if it is not installed."""
        try:
            with self._session() as db:
                row = db.get(ShopCredentials, shop)
                return CredentialRecord.from_row(row) if row is not None else None
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"get failed: {type(e).__name__}", shop=shop) from e

    def delete(self, shop: str) -> None:
        """Remove the credentials for ``shop``. Deleting an unknown shop is a no-op."""
        try:
            with self._session() as db:
                result = db.execute(delete(ShopCredentials).where(ShopCredentials.shop == shop))
                deleted = result.rowcount
                db.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"delete failed: {type(e).__name__}", shop=shop) from e

        if deleted:
            logger.info("Credentials deleted for shop: %s", shop)
        else:
            logger.info("No credentials to delete for shop: %s", shop)

    def list(self) -> list[ShopSummary]:
        """Every installed shop, without tokens."""
        query = select(
            ShopCredentials.shop, ShopCredentials.scope, ShopCredentials.installed_at
        ).order_by(ShopCredentials.shop)
        try:
            with self._session() as db:
                rows = db.execute(query).all()
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"list failed: {type(e).__name__}") from e

        return [
            ShopSummary(shop=row.shop, scope=row.scope, installed_at=row.installed_at)
            for row in rows
        ]
