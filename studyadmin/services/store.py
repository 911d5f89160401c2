from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studyadmin.models import AuthIdentity
from .errors import StoreError

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY_PAGE_SIZE = 1000


class RowStore:
    """
    Thin facade over a SQLAlchemy session with the row-store verbs the
    admin screens use: select / count / get / insert / update / delete.

    Every SQLAlchemy failure surfaces as StoreError; mutations roll the
    session back first so the caller's state is unchanged.
    """

    def __init__(self, session: Session):
        self.session = session

    # ---- reads -------------------------------------------------------------
    def select(
        self,
        model,
        *,
        filters: Sequence[Any] = (),
        order: Sequence[Any] = (),
        range_: Optional[Tuple[int, int]] = None,
        columns: Optional[Sequence[Any]] = None,
    ) -> List[Any]:
        """range_ is (offset, limit)."""
        try:
            query = self.session.query(*columns) if columns else self.session.query(model)
            for f in filters:
                query = query.filter(f)
            if order:
                query = query.order_by(*order)
            if range_ is not None:
                offset, limit = range_
                query = query.offset(offset).limit(limit)
            return query.all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"select on {model.__tablename__} failed: {e}") from e

    def count(self, model, *, filters: Sequence[Any] = ()) -> int:
        try:
            query = self.session.query(model)
            for f in filters:
                query = query.filter(f)
            return query.count()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"count on {model.__tablename__} failed: {e}") from e

    def get(self, model, pk):
        try:
            return self.session.get(model, pk)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"get on {model.__tablename__} failed: {e}") from e

    # ---- writes ------------------------------------------------------------
    def insert(self, obj):
        self.session.add(obj)
        self._commit(f"insert into {obj.__tablename__}")
        return obj

    def update(self, obj, **values):
        for key, value in values.items():
            setattr(obj, key, value)
        self._commit(f"update {obj.__tablename__}")
        return obj

    def delete(self, model, *filters) -> int:
        """Delete every row matching filters; returns the number of rows removed."""
        if not filters:
            # refuse a predicate-less delete (full table wipe)
            raise StoreError(f"delete on {model.__tablename__} requires a predicate")
        try:
            query = self.session.query(model)
            for f in filters:
                query = query.filter(f)
            removed = query.delete()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"delete on {model.__tablename__} failed: {e}") from e
        self._commit(f"delete from {model.__tablename__}")
        return removed

    def _commit(self, what: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"{what} failed: {e}") from e

    # ---- lookups -----------------------------------------------------------
    def lookup_map(self, model, ids: Iterable[Any], *, key: str = "id") -> Dict[Any, Any]:
        """
        Batch-fetch rows of `model` whose `key` column is in `ids` and return
        {key_value: row}. Falsy ids are skipped; an empty id set never queries.
        """
        wanted = {i for i in ids if i}
        if not wanted:
            return {}
        column = getattr(model, key)
        rows = self.select(model, filters=[column.in_(wanted)])
        return {getattr(r, key): r for r in rows}

    def iter_identities(self, page_size: int = DEFAULT_IDENTITY_PAGE_SIZE) -> Iterator[AuthIdentity]:
        """
        Walk the whole identity set one page at a time. Keeps going until a
        short page comes back, so user bases larger than one page are covered.
        """
        page = 0
        while True:
            batch = self.select(
                AuthIdentity,
                order=[AuthIdentity.created_at.asc(), AuthIdentity.id.asc()],
                range_=(page * page_size, page_size),
            )
            yield from batch
            if len(batch) < page_size:
                return
            page += 1

    def identity_emails(self, page_size: int = DEFAULT_IDENTITY_PAGE_SIZE) -> Dict[str, str]:
        """{identity_id: email} for every identity that has an email."""
        return {i.id: i.email for i in self.iter_identities(page_size) if i.email}


def attach(rows: Iterable[Any], lookup: Dict[Any, Any], *, key: str, default: Any = None) -> List[Tuple[Any, Any]]:
    """Pair each row with lookup[row.<key>] (or `default`): the client-side join step."""
    return [(row, lookup.get(getattr(row, key), default)) for row in rows]


def safe_lookup_map(store: RowStore, model, ids: Iterable[Any], *, key: str = "id") -> Dict[Any, Any]:
    """lookup_map that degrades to {} on StoreError (secondary lookups only)."""
    try:
        return store.lookup_map(model, ids, key=key)
    except StoreError as e:
        logger.warning("lookup on %s failed: %s", model.__tablename__, e)
        return {}
