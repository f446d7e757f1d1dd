"""
Refresh token stores.

A store keeps one record per live refresh token, keyed by the token's jti.
Expired records behave exactly like absent ones: `get` and `replace` never
return them, and they are removed lazily on lookup or by `purge_expired`.

`replace` is the rotation primitive. It deletes the old record only if it is
still live and inserts the successor in the same step, so of several
concurrent rotations of one token exactly one receives the old record and
the others receive None.
"""
from __future__ import annotations

import abc
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Set

from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from services.exceptions import TokenCollision

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshRecord:
    jti: str
    user_id: str
    family_id: str
    expires_at: int

    def is_expired(self, now: int) -> bool:
        return now >= self.expires_at


class RefreshStore(abc.ABC):
    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock())

    @abc.abstractmethod
    def put(self, user_id: str, jti: str, expires_at: int, family_id: str) -> RefreshRecord:
        """Store a new record. Raises TokenCollision if `jti` is already taken."""

    @abc.abstractmethod
    def get(self, jti: str) -> Optional[RefreshRecord]:
        """Return the live record for `jti`, or None."""

    @abc.abstractmethod
    def delete(self, jti: str) -> bool:
        """Remove the record for `jti`. Returns False if there was none."""

    @abc.abstractmethod
    def delete_all_for_user(self, user_id: str) -> int:
        """Remove every record belonging to `user_id`; returns how many."""

    @abc.abstractmethod
    def replace(self, old_jti: str, new_jti: str, expires_at: int) -> Optional[RefreshRecord]:
        """
        Atomically swap a live record for a new one with the same user and
        family. Returns the old record, or None if it was absent or expired
        (in which case nothing is inserted). Raises TokenCollision if
        `new_jti` is taken; the old record is then left in place.
        """

    @abc.abstractmethod
    def purge_expired(self) -> int:
        """Remove all expired records; returns how many."""


class MemoryRefreshStore(RefreshStore):
    """Process-local store. All mutations happen under one lock."""

    def __init__(self, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self._lock = threading.Lock()
        self._records: Dict[str, RefreshRecord] = {}
        self._by_user: Dict[str, Set[str]] = {}

    def _insert(self, record: RefreshRecord) -> None:
        self._records[record.jti] = record
        self._by_user.setdefault(record.user_id, set()).add(record.jti)

    def _remove(self, jti: str) -> Optional[RefreshRecord]:
        record = self._records.pop(jti, None)
        if record is not None:
            jtis = self._by_user.get(record.user_id)
            if jtis is not None:
                jtis.discard(jti)
                if not jtis:
                    del self._by_user[record.user_id]
        return record

    def _live(self, jti: str) -> Optional[RefreshRecord]:
        record = self._records.get(jti)
        if record is not None and record.is_expired(self._now()):
            self._remove(jti)
            return None
        return record

    def put(self, user_id, jti, expires_at, family_id):
        record = RefreshRecord(jti=jti, user_id=user_id, family_id=family_id, expires_at=int(expires_at))
        with self._lock:
            if self._live(jti) is not None:
                raise TokenCollision(jti)
            self._insert(record)
        return record

    def get(self, jti):
        with self._lock:
            return self._live(jti)

    def delete(self, jti):
        with self._lock:
            return self._remove(jti) is not None

    def delete_all_for_user(self, user_id):
        with self._lock:
            jtis = list(self._by_user.get(user_id, ()))
            for jti in jtis:
                self._remove(jti)
            return len(jtis)

    def replace(self, old_jti, new_jti, expires_at):
        with self._lock:
            old = self._live(old_jti)
            if old is None:
                return None
            if new_jti in self._records:
                raise TokenCollision(new_jti)
            self._remove(old_jti)
            self._insert(RefreshRecord(
                jti=new_jti, user_id=old.user_id, family_id=old.family_id, expires_at=int(expires_at),
            ))
            return old

    def purge_expired(self):
        now = self._now()
        with self._lock:
            expired = [jti for jti, rec in self._records.items() if rec.is_expired(now)]
            for jti in expired:
                self._remove(jti)
            return len(expired)

    def __len__(self):
        with self._lock:
            return len(self._records)


def _to_record(row: RefreshToken) -> RefreshRecord:
    return RefreshRecord(jti=row.jti, user_id=row.user_id, family_id=row.family_id, expires_at=row.expires_at)


class SQLRefreshStore(RefreshStore):
    """
    Database-backed store on top of DBStorage. Every method commits or
    rolls back before returning; no transaction spans two calls.
    """

    def __init__(self, storage: DBStorage, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self._storage = storage

    def _session(self):
        return self._storage.get_session()

    def _insert(self, session, record: RefreshRecord, now: int) -> None:
        # An expired row may still hold the id; it counts as absent
        session.query(RefreshToken).filter(
            RefreshToken.jti == record.jti, RefreshToken.expires_at <= now,
        ).delete(synchronize_session=False)
        # Core insert: a duplicate id surfaces as IntegrityError from the primary key
        session.execute(insert(RefreshToken).values(
            jti=record.jti, user_id=record.user_id, family_id=record.family_id, expires_at=record.expires_at,
        ))

    def put(self, user_id, jti, expires_at, family_id):
        session = self._session()
        record = RefreshRecord(jti=jti, user_id=user_id, family_id=family_id, expires_at=int(expires_at))
        try:
            self._insert(session, record, self._now())
            session.commit()
        except IntegrityError:
            session.rollback()
            raise TokenCollision(jti)
        except Exception:
            session.rollback()
            raise
        return record

    def get(self, jti):
        session = self._session()
        row = session.get(RefreshToken, jti)
        if row is None:
            return None
        record = _to_record(row)
        if record.is_expired(self._now()):
            self.delete(jti)
            return None
        return record

    def delete(self, jti):
        session = self._session()
        try:
            deleted = session.query(RefreshToken).filter(RefreshToken.jti == jti).delete(synchronize_session=False)
            session.commit()
        except Exception:
            session.rollback()
            raise
        # drop any stale identity-map copy
        session.expire_all()
        return deleted > 0

    def delete_all_for_user(self, user_id):
        session = self._session()
        try:
            deleted = (
                session.query(RefreshToken)
                .filter(RefreshToken.user_id == user_id)
                .delete(synchronize_session=False)
            )
            session.commit()
        except Exception:
            session.rollback()
            raise
        session.expire_all()
        return deleted

    def replace(self, old_jti, new_jti, expires_at):
        session = self._session()
        now = self._now()
        try:
            row = session.get(RefreshToken, old_jti, populate_existing=True)
            if row is None or row.expires_at <= now:
                session.rollback()
                return None
            old = _to_record(row)
            # Conditional delete: only the caller that actually removes the row wins
            deleted = (
                session.query(RefreshToken)
                .filter(RefreshToken.jti == old_jti, RefreshToken.expires_at > now)
                .delete(synchronize_session=False)
            )
            if deleted != 1:
                session.rollback()
                return None
            session.expunge(row)
            self._insert(session, RefreshRecord(
                jti=new_jti, user_id=old.user_id, family_id=old.family_id, expires_at=int(expires_at),
            ), now)
            session.commit()
        except IntegrityError:
            session.rollback()
            raise TokenCollision(new_jti)
        except Exception:
            session.rollback()
            raise
        return old

    def purge_expired(self):
        session = self._session()
        try:
            deleted = (
                session.query(RefreshToken)
                .filter(RefreshToken.expires_at <= self._now())
                .delete(synchronize_session=False)
            )
            session.commit()
        except Exception:
            session.rollback()
            raise
        session.expire_all()
        logger.info("Purged %d expired refresh tokens", deleted)
        return deleted


def build_refresh_store(backend: str, storage: DBStorage, clock: Callable[[], float] = time.time) -> RefreshStore:
    backend = (backend or "sql").lower()
    if backend == "memory":
        return MemoryRefreshStore(clock=clock)
    if backend == "sql":
        return SQLRefreshStore(storage, clock=clock)
    raise ValueError(f"Unknown refresh store backend: {backend!r}")
