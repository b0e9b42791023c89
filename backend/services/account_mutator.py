"""Serialization boundary for investment account mutations."""

import logging
import threading
import weakref
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from database import acquire_write_lock
from models import InvestmentAccount, utc_now
from services.exceptions import (
    ConcurrentModificationError,
    LedgerError,
    NotFoundError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)


def check_owner(account: InvestmentAccount, caller_id: str) -> None:
    if account.owner_id != caller_id:
        raise UnauthorizedError(
            f"Account {account.id} does not belong to the caller",
            account_id=account.id,
        )


class AccountMutator:
    """Runs one mutation against one account as an atomic unit of work.

    Usage::

        with AccountMutator.mutate(db, account_id, caller_id) as account:
            ...  # change account, its holdings, lots, cash, log

    On entry the mutator:
    - takes an in-process lock for the account id, so mutations of the
      same account in this process run one at a time
    - starts the transaction with the database write lock
      (``BEGIN IMMEDIATE`` on SQLite), serializing writers across processes
    - re-reads the account fresh and verifies the caller owns it
    - rejects the call if ``expected_version`` no longer matches

    On a clean exit it bumps the account version and commits. Any
    exception rolls the whole unit back; a stale-row flush surfaces as
    ConcurrentModificationError. There are no retries.

    The session must not carry uncommitted writes when entering.
    """

    _registry_lock = threading.Lock()
    # Entries live only while some caller holds the lock object
    _account_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()

    @classmethod
    def lock_for(cls, account_id: str) -> threading.Lock:
        with cls._registry_lock:
            lock = cls._account_locks.get(account_id)
            if lock is None:
                lock = threading.Lock()
                cls._account_locks[account_id] = lock
            return lock

    @classmethod
    @contextmanager
    def mutate(
        cls,
        db: Session,
        account_id: str,
        caller_id: str,
        expected_version: Optional[int] = None,
    ) -> Iterator[InvestmentAccount]:
        with cls.lock_for(account_id):
            try:
                acquire_write_lock(db)
                # Drop anything read before the lock was held
                db.expire_all()

                account = db.get(InvestmentAccount, account_id)
                if account is None:
                    raise NotFoundError(f"Account {account_id} not found", account_id=account_id)
                check_owner(account, caller_id)
                if expected_version is not None and account.version != expected_version:
                    raise ConcurrentModificationError(
                        f"Account {account_id} has changed since it was read",
                        account_id=account_id,
                        expected_version=expected_version,
                        current_version=account.version,
                    )

                # Dirty the row once; whichever flush writes it bumps the version
                account.updated_at = utc_now()

                yield account

                db.flush()
                db.commit()
            except StaleDataError as e:
                db.rollback()
                logger.warning("Account %s mutation lost a concurrent update: %s", account_id, e)
                raise ConcurrentModificationError(
                    f"Account {account_id} was modified concurrently",
                    account_id=account_id,
                ) from e
            except LedgerError as e:
                db.rollback()
                logger.info("Account %s mutation rejected (%s): %s", account_id, e.kind, e)
                raise
            except Exception:
                db.rollback()
                logger.exception("Account %s mutation failed", account_id)
                raise
