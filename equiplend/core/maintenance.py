#!/usr/bin/env python

"""
    Maintenance Ledger for Equiplend.

    Maintenance is scheduled ahead of time without touching the
    equipment; only starting the work takes the equipment out of
    rotation, and completing or cancelling it puts it back.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
import datetime
from sqlalchemy import and_, func
from equiplend.configs import PREDICTIVE_THRESHOLD_DAYS, REMINDER_WINDOW_DAYS
from equiplend.core.db import session as db
from equiplend.core.models import (
    new_id,
    ActiveKind,
    Equipment,
    EquipmentStatus,
    Maintenance,
    MaintenanceStatus,
    MaintenanceType,
    Priority,
)
from equiplend.core.coordinator import StatusCoordinator
from equiplend.core.utils import require, as_date
from equiplend.core.exceptions import (
    MaintenanceNotFoundError,
    EquipmentNotFoundError,
    InvalidTransitionError,
    InvalidFieldError,
)

logger = logging.getLogger(__name__)


def _parse(enum_cls, value, field):
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise InvalidFieldError(f"'{field}' must be one of {choices}, got '{value}'.")


class MaintenanceLedger:

    EDITABLE = {"equipment_id", "scheduled_date", "type", "priority", "technician", "description"}
    # Statuses from which starting work may take the equipment
    STARTABLE_FROM = (
        EquipmentStatus.AVAILABLE,
        EquipmentStatus.DAMAGED,
        EquipmentStatus.IN_MAINTENANCE,
    )

    @classmethod
    def get(cls, maintenance_id):
        if maintenance := Maintenance.exists(maintenance_id):
            return maintenance
        raise MaintenanceNotFoundError(f"Maintenance '{maintenance_id}' not found.")

    @classmethod
    def list(cls, equipment_id=None, status=None, offset=None, limit=None):
        query = db.query(Maintenance)
        if equipment_id:
            query = query.filter(Maintenance.equipment_id == equipment_id)
        if status:
            query = query.filter(Maintenance.status == _parse(MaintenanceStatus, status, "status"))
        query = query.order_by(Maintenance.scheduled_date.desc(), Maintenance.created_at.desc())
        return Maintenance.get_many(query, offset=offset, limit=limit)

    @classmethod
    def create(cls, equipment_id, scheduled_date, type, priority, technician=None, description=None):
        require(equipment_id=equipment_id, scheduled_date=scheduled_date, type=type, priority=priority)
        maintenance = Maintenance(
            id=new_id(),
            equipment_id=equipment_id,
            scheduled_date=as_date(scheduled_date, "scheduled_date"),
            type=_parse(MaintenanceType, type, "type"),
            priority=_parse(Priority, priority, "priority"),
            status=MaintenanceStatus.SCHEDULED,
            technician=technician,
            description=description,
        )
        with StatusCoordinator.transaction():
            if not Equipment.exists(equipment_id):
                raise EquipmentNotFoundError(f"Equipment '{equipment_id}' not found.")
            db.add(maintenance)
        logger.info(f"Maintenance {maintenance.id} scheduled for {maintenance.scheduled_date}")
        return maintenance

    @classmethod
    def update(cls, maintenance_id, **fields):
        """Edits scheduling details; status moves only through
        start/complete/cancel."""
        if forbidden := set(fields) - cls.EDITABLE:
            raise InvalidFieldError(f"Cannot edit: {', '.join(sorted(forbidden))}.")
        for field in ("equipment_id", "scheduled_date", "type", "priority"):
            if field in fields and not fields[field]:
                raise InvalidFieldError(f"'{field}' cannot be empty.")
        maintenance = cls.get(maintenance_id)
        with StatusCoordinator.transaction():
            if fields.get("equipment_id") and fields["equipment_id"] != maintenance.equipment_id:
                if maintenance.status != MaintenanceStatus.SCHEDULED:
                    raise InvalidTransitionError(
                        f"Maintenance '{maintenance.id}' is {maintenance.status.value}; "
                        f"its equipment cannot change.")
                if not Equipment.exists(fields["equipment_id"]):
                    raise EquipmentNotFoundError(f"Equipment '{fields['equipment_id']}' not found.")
                maintenance.equipment_id = fields["equipment_id"]
            if fields.get("scheduled_date"):
                maintenance.scheduled_date = as_date(fields["scheduled_date"], "scheduled_date")
            if fields.get("type"):
                maintenance.type = _parse(MaintenanceType, fields["type"], "type")
            if fields.get("priority"):
                maintenance.priority = _parse(Priority, fields["priority"], "priority")
            for field in ("technician", "description"):
                if field in fields:
                    setattr(maintenance, field, fields[field])
        return maintenance

    @classmethod
    def delete(cls, maintenance_id):
        maintenance = cls.get(maintenance_id)
        with StatusCoordinator.transaction():
            if maintenance.status == MaintenanceStatus.IN_PROGRESS:
                raise InvalidTransitionError(
                    f"Maintenance '{maintenance.id}' is in progress; complete or cancel it first.")
            db.delete(maintenance)
        return True

    @classmethod
    def _lock(cls, tx, maintenance_id):
        """Locks the maintenance's equipment and re-reads the maintenance.
        Returns (maintenance, equipment); equipment is None if it is gone."""
        maintenance = cls.get(maintenance_id)
        try:
            equipment = tx.lock(maintenance.equipment_id)
        except EquipmentNotFoundError:
            equipment = None
        maintenance = (
            db.query(Maintenance)
            .filter(Maintenance.id == maintenance_id)
            .populate_existing()
            .one()
        )
        return maintenance, equipment

    @classmethod
    def start(cls, maintenance_id):
        with StatusCoordinator.transaction() as tx:
            maintenance, equipment = cls._lock(tx, maintenance_id)
            if maintenance.status != MaintenanceStatus.SCHEDULED:
                raise InvalidTransitionError(
                    f"Maintenance '{maintenance.id}' is {maintenance.status.value} and cannot start.")
            maintenance.status = MaintenanceStatus.IN_PROGRESS
            if equipment is not None:
                StatusCoordinator.claim(
                    equipment, ActiveKind.MAINTENANCE, maintenance.id,
                    allowed_from=cls.STARTABLE_FROM)
        logger.info(f"Maintenance {maintenance.id} started")
        return maintenance

    @classmethod
    def _finish(cls, maintenance_id, status, performed_date=None):
        with StatusCoordinator.transaction() as tx:
            maintenance, equipment = cls._lock(tx, maintenance_id)
            if not maintenance.is_open:
                raise InvalidTransitionError(
                    f"Maintenance '{maintenance.id}' is already {maintenance.status.value}.")
            was_started = maintenance.status == MaintenanceStatus.IN_PROGRESS
            maintenance.status = status
            if performed_date:
                maintenance.performed_date = performed_date
            if equipment is None:
                logger.warning(f"Maintenance {maintenance.id} has no equipment to release")
            elif StatusCoordinator.holds(equipment, ActiveKind.MAINTENANCE, maintenance.id):
                StatusCoordinator.vacate(
                    equipment, ActiveKind.MAINTENANCE, maintenance.id, EquipmentStatus.AVAILABLE)
            elif (status == MaintenanceStatus.COMPLETED and not equipment.is_held
                    and equipment.status == EquipmentStatus.IN_MAINTENANCE):
                # Work done on equipment parked in maintenance by a release
                StatusCoordinator.set_status(equipment, EquipmentStatus.AVAILABLE)
            elif was_started:
                logger.warning(
                    f"Maintenance {maintenance.id} was in progress without holding "
                    f"equipment {equipment.code}")
        logger.info(f"Maintenance {maintenance.id} {status.value}")
        return maintenance

    @classmethod
    def complete(cls, maintenance_id, performed_date):
        require(performed_date=performed_date)
        performed_date = as_date(performed_date, "performed_date")
        return cls._finish(maintenance_id, MaintenanceStatus.COMPLETED, performed_date)

    @classmethod
    def cancel(cls, maintenance_id):
        return cls._finish(maintenance_id, MaintenanceStatus.CANCELLED)

    @classmethod
    def due_soon(cls, days=REMINDER_WINDOW_DAYS, today=None):
        """Scheduled maintenance falling within the next `days` days."""
        today = today or datetime.date.today()
        return (
            db.query(Maintenance)
            .filter(
                Maintenance.status == MaintenanceStatus.SCHEDULED,
                Maintenance.scheduled_date.between(today, today + datetime.timedelta(days=days)),
            )
            .order_by(Maintenance.scheduled_date)
            .all()
        )

    @classmethod
    def overdue(cls, today=None):
        """Scheduled maintenance whose date has passed without starting."""
        today = today or datetime.date.today()
        return (
            db.query(Maintenance)
            .filter(
                Maintenance.status == MaintenanceStatus.SCHEDULED,
                Maintenance.scheduled_date < today,
            )
            .order_by(Maintenance.scheduled_date)
            .all()
        )

    @classmethod
    def predictive_report(cls, threshold_days=PREDICTIVE_THRESHOLD_DAYS, today=None):
        """Days since each equipment's last completed maintenance (or since
        it was registered), flagging those past `threshold_days`."""
        today = today or datetime.date.today()
        last_done = func.max(Maintenance.performed_date)
        rows = (
            db.query(Equipment, last_done)
            .outerjoin(Maintenance, and_(
                Maintenance.equipment_id == Equipment.id,
                Maintenance.status == MaintenanceStatus.COMPLETED,
            ))
            .filter(Equipment.status != EquipmentStatus.DONATED)
            .group_by(Equipment.id)
            .all()
        )
        report = []
        for equipment, last in rows:
            since = last or (equipment.created_at.date() if equipment.created_at else today)
            days = (today - since).days
            report.append({
                "equipment_id": equipment.id,
                "code": equipment.code,
                "name": equipment.name,
                "status": equipment.status.value,
                "last_maintenance": last,
                "days_since": days,
                "flagged": days > threshold_days,
            })
        return sorted(report, key=lambda r: r["days_since"], reverse=True)
