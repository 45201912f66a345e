#!/usr/bin/env python

"""
    Status Coordinator for Equiplend.

    Equipment status is written from one place only. Every ledger
    operation that moves equipment between states opens a
    `StatusCoordinator.transaction()`, takes an exclusive lock on the
    equipment row, asks the coordinator to `claim` or `vacate` it, and
    writes its own ledger row; the ledger row and the equipment row are
    committed (or rolled back) together.

    An equipment row is held by at most one active ledger entry, recorded
    in `Equipment.active_kind` / `Equipment.active_entry_id`, and its
    status always mirrors that holder.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
import threading
from contextlib import contextmanager
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from equiplend.configs import LOCK_TIMEOUT
from equiplend.core.db import session as db
from equiplend.core.models import Equipment, EquipmentStatus, ActiveKind
from equiplend.core.exceptions import (
    EquiplendAPIError,
    EquipmentNotFoundError,
    EquipmentUnavailableError,
    EquipmentInUseError,
    InvalidTransitionError,
    InvalidFieldError,
    InvariantViolation,
    LockTimeoutError,
    DatabaseError,
)

logger = logging.getLogger(__name__)

# Postgres lock_not_available / deadlock_detected
LOCK_ERROR_CODES = {"55P03", "40P01"}


def is_lock_error(error):
    orig = getattr(error, "orig", None)
    if getattr(orig, "pgcode", None) in LOCK_ERROR_CODES:
        return True
    return "database is locked" in str(orig or error)


class EquipmentMutexes:
    """In-process per-equipment mutexes for stores without row locks."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def get(self, equipment_id):
        with self._guard:
            return self._locks.setdefault(equipment_id, threading.Lock())

    def acquire(self, equipment_id, timeout=LOCK_TIMEOUT):
        mutex = self.get(equipment_id)
        if not mutex.acquire(timeout=timeout):
            raise LockTimeoutError(
                f"Timed out after {timeout}s waiting for equipment {equipment_id}.")
        return mutex


class Transaction:
    """A unit of work holding exclusive locks on equipment rows."""

    def __init__(self, session, mutexes, timeout=LOCK_TIMEOUT):
        self.session = session
        self.mutexes = mutexes
        self.timeout = timeout
        self.locked = {}
        self._held = []

    @property
    def dialect(self):
        return self.session.get_bind().dialect.name

    @property
    def has_row_locks(self):
        return self.dialect != "sqlite"

    def _set_lock_timeout(self):
        if self.dialect == "postgresql" and not self.locked:
            millis = int(self.timeout * 1000)
            self.session.execute(text(f"SET LOCAL lock_timeout = {millis}"))

    def lock(self, equipment_id):
        """Returns the equipment row, exclusively locked until the
        transaction ends. Raises EquipmentNotFoundError if it is missing.
        """
        if equipment_id in self.locked:
            return self.locked[equipment_id]
        if not self.has_row_locks:
            self._held.append(self.mutexes.acquire(equipment_id, self.timeout))
        self._set_lock_timeout()
        equipment = (
            self.session.query(Equipment)
            .filter(Equipment.id == equipment_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if equipment is None:
            raise EquipmentNotFoundError(f"Equipment '{equipment_id}' not found.")
        self.locked[equipment_id] = equipment
        return equipment

    def lock_many(self, *equipment_ids):
        """Locks several rows in a stable order so two transactions never
        wait on each other in opposite order."""
        for equipment_id in sorted(set(equipment_ids)):
            self.lock(equipment_id)
        return [self.locked[equipment_id] for equipment_id in equipment_ids]

    def release(self):
        while self._held:
            self._held.pop().release()


class StatusCoordinator:

    HOLDER_STATUS = {
        ActiveKind.LOAN: EquipmentStatus.LOANED,
        ActiveKind.ASSIGNMENT: EquipmentStatus.ASSIGNED,
        ActiveKind.MAINTENANCE: EquipmentStatus.IN_MAINTENANCE,
    }
    # Statuses an equipment row may have while no ledger entry holds it
    FREE_STATUSES = {
        EquipmentStatus.AVAILABLE,
        EquipmentStatus.DAMAGED,
        EquipmentStatus.IN_MAINTENANCE,
        EquipmentStatus.DONATED,
    }
    OVERRIDE_STATUSES = {
        EquipmentStatus.AVAILABLE,
        EquipmentStatus.DAMAGED,
        EquipmentStatus.IN_MAINTENANCE,
    }
    mutexes = EquipmentMutexes()

    @classmethod
    @contextmanager
    def transaction(cls, timeout=None):
        """Runs the enclosed ledger work as one atomic unit.

        Commits on success after re-checking every locked equipment row;
        rolls back on any failure. Store lock waits and deadlocks surface
        as LockTimeoutError, other store failures as DatabaseError.
        """
        tx = Transaction(db, cls.mutexes, timeout or LOCK_TIMEOUT)
        try:
            yield tx
            db.flush()
            for equipment in tx.locked.values():
                cls.verify(equipment)
            db.commit()
        except EquiplendAPIError as e:
            db.rollback()
            logger.info(f"Rolled back: {e.kind}: {e}")
            raise
        except OperationalError as e:
            db.rollback()
            if is_lock_error(e):
                logger.warning(f"Lock wait failed: {e}")
                raise LockTimeoutError() from e
            logger.error(f"Database failure, rolled back: {e}")
            raise DatabaseError(f"Database failure: {e.orig or e}") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database failure, rolled back: {e}")
            raise DatabaseError(f"Database failure: {e}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            tx.release()

    @classmethod
    def holds(cls, equipment, kind, entry_id):
        return equipment.active_kind == kind and equipment.active_entry_id == entry_id

    @classmethod
    def claim(cls, equipment, kind, entry_id, allowed_from=(EquipmentStatus.AVAILABLE,)):
        """Hands a free equipment row to a ledger entry."""
        if equipment.is_held or equipment.status not in allowed_from:
            raise EquipmentUnavailableError(
                f"Equipment '{equipment.code}' is not available "
                f"(current status: {equipment.status.value}).")
        new_status = cls.HOLDER_STATUS[kind]
        logger.info(
            f"Equipment {equipment.code}: {equipment.status.value} -> "
            f"{new_status.value} ({kind.value} {entry_id})")
        equipment.status = new_status
        equipment.active_kind = kind
        equipment.active_entry_id = entry_id
        return equipment

    @classmethod
    def vacate(cls, equipment, kind, entry_id, to_status=EquipmentStatus.AVAILABLE):
        """Releases an equipment row from the ledger entry holding it."""
        if not cls.holds(equipment, kind, entry_id):
            raise InvariantViolation(
                f"Equipment '{equipment.code}' is not held by {kind.value} {entry_id}.")
        if to_status not in cls.FREE_STATUSES:
            raise InvariantViolation(f"Cannot release equipment into '{to_status.value}'.")
        logger.info(
            f"Equipment {equipment.code}: {equipment.status.value} -> "
            f"{to_status.value} (released by {kind.value} {entry_id})")
        equipment.status = to_status
        equipment.active_kind = None
        equipment.active_entry_id = None
        return equipment

    @classmethod
    def set_status(cls, equipment, status):
        """Administrative correction of a free equipment row."""
        try:
            status = EquipmentStatus(status)
        except ValueError:
            raise InvalidFieldError(f"Unknown equipment status '{status}'.")
        if status not in cls.OVERRIDE_STATUSES:
            raise InvalidFieldError(f"Status '{status.value}' cannot be set directly.")
        if equipment.is_held:
            raise EquipmentInUseError(
                f"Equipment '{equipment.code}' is held by "
                f"{equipment.active_kind.value} {equipment.active_entry_id}.")
        if equipment.status == EquipmentStatus.DONATED:
            raise InvalidTransitionError(f"Equipment '{equipment.code}' was donated.")
        logger.info(f"Equipment {equipment.code}: {equipment.status.value} -> {status.value} (override)")
        equipment.status = status
        return equipment

    @classmethod
    def verify(cls, equipment):
        if equipment.active_kind is not None:
            expected = cls.HOLDER_STATUS[equipment.active_kind]
            if equipment.status != expected or not equipment.active_entry_id:
                raise InvariantViolation(
                    f"Equipment '{equipment.code}' is held by {equipment.active_kind.value} "
                    f"but has status '{equipment.status.value}'.")
        elif equipment.status not in cls.FREE_STATUSES or equipment.active_entry_id:
            raise InvariantViolation(
                f"Equipment '{equipment.code}' has status '{equipment.status.value}' "
                f"without an active ledger entry.")
        return True
