"""Explicit unit-of-work boundary over ``django.db.transaction.atomic``.

A ``UnitOfWork`` is owned by exactly one operation attempt (e.g. placing
one order).  It moves through ``OPEN`` to either ``COMMITTED`` or
``ABORTED``; the wrapped ``atomic`` block is always exited, so the
transaction is committed or rolled back on every exit path, including
``KeyboardInterrupt`` and other ``BaseException`` subclasses.

Usage::

    with UnitOfWork(name="order.place") as uow:
        reserved = engine.reserve(lines)
        order = writer.write_order(user_id, address, reserved)
    # uow.state is COMMITTED here

Any exception raised inside the block rolls back every write made
through the same database alias before it propagates to the caller.
"""

from __future__ import annotations

from enum import StrEnum
from types import TracebackType
from typing import Optional, Type
from uuid import uuid4

import structlog
from django.db import DEFAULT_DB_ALIAS, transaction

logger = structlog.get_logger(__name__)


class TransactionState(StrEnum):
    OPEN = "open"
    COMMITTED = "committed"
    ABORTED = "aborted"


class UnitOfWork:
    """Context manager holding one transaction for one operation attempt."""

    def __init__(self, name: str = "unit_of_work", using: Optional[str] = None) -> None:
        self.name = name
        self.using = using or DEFAULT_DB_ALIAS
        self.transaction_id = str(uuid4())
        self.state: Optional[TransactionState] = None
        self._atomic: Optional[transaction.Atomic] = None
        self._log = logger.bind(
            unit_of_work=name,
            transaction_id=self.transaction_id,
            using=self.using,
        )

    def __enter__(self) -> UnitOfWork:
        if self._atomic is not None:
            raise RuntimeError(f"UnitOfWork {self.name!r} is already open.")
        self._atomic = transaction.atomic(using=self.using)
        self._atomic.__enter__()
        self.state = TransactionState.OPEN
        self._log.debug("transaction.opened")
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        atomic, self._atomic = self._atomic, None
        try:
            # Commits when exc_type is None, rolls back otherwise.  A failed
            # commit raises from here.
            atomic.__exit__(exc_type, exc, tb)
        except BaseException as commit_exc:
            self.state = TransactionState.ABORTED
            self._log.error(
                "transaction.commit_failed",
                error=str(commit_exc),
                error_type=type(commit_exc).__name__,
            )
            raise

        if exc_type is None:
            self.state = TransactionState.COMMITTED
            self._log.debug("transaction.committed")
        else:
            self.state = TransactionState.ABORTED
            self._log.info(
                "transaction.aborted",
                error_type=exc_type.__name__,
                error=str(exc),
            )
        return False

    @property
    def is_open(self) -> bool:
        return self.state == TransactionState.OPEN

    @property
    def committed(self) -> bool:
        return self.state == TransactionState.COMMITTED
