import logging
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from equiplend.core.db import session as db
from equiplend.core.models import Equipment, EquipmentStatus, Loan, Assignment, Maintenance
from equiplend.core.coordinator import StatusCoordinator
from equiplend.core.utils import require
from equiplend.core.exceptions import (
    EquipmentNotFoundError,
    EquipmentExistsError,
    EquipmentInUseError,
    InvalidFieldError,
    DatabaseError,
)

logger = logging.getLogger(__name__)


class EquipmentRegistry:

    EDITABLE = {"code", "name", "serial", "type", "description"}

    @classmethod
    def get(cls, equipment_id):
        if equipment := Equipment.exists(equipment_id):
            return equipment
        raise EquipmentNotFoundError(f"Equipment '{equipment_id}' not found.")

    @classmethod
    def _check_unique(cls, code=None, serial=None, exclude_id=None):
        clauses = []
        if code:
            clauses.append(Equipment.code == code)
        if serial:
            clauses.append(Equipment.serial == serial)
        if not clauses:
            return
        query = db.query(Equipment).filter(or_(*clauses))
        if exclude_id:
            query = query.filter(Equipment.id != exclude_id)
        if clash := query.first():
            field = "code" if code and clash.code == code else "serial"
            raise EquipmentExistsError(f"Equipment with {field} '{getattr(clash, field)}' already exists.")

    @classmethod
    def _save(cls, equipment, action):
        try:
            db.add(equipment)
            db.commit()
            return equipment
        except IntegrityError as e:
            db.rollback()
            raise EquipmentExistsError(f"Equipment code or serial already exists: {e.orig}.")
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to {action} equipment: {e}.")

    @classmethod
    def create(cls, code, name, type, serial=None, description=None, created_by=None):
        require(code=code, name=name, type=type)
        cls._check_unique(code=code, serial=serial)
        equipment = cls._save(Equipment(
            code=code,
            name=name,
            type=type,
            serial=serial or None,
            description=description,
            created_by=created_by,
            status=EquipmentStatus.AVAILABLE,
        ), "create")
        logger.info(f"Equipment {equipment.code} registered")
        return equipment

    @classmethod
    def list(cls, status=None, type=None, search=None, offset=None, limit=None):
        query = db.query(Equipment)
        if status:
            try:
                query = query.filter(Equipment.status == EquipmentStatus(status))
            except ValueError:
                raise InvalidFieldError(f"Unknown equipment status '{status}'.")
        if type:
            query = query.filter(Equipment.type == type)
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                Equipment.code.ilike(term),
                Equipment.name.ilike(term),
                Equipment.serial.ilike(term),
            ))
        query = query.order_by(Equipment.created_at.desc(), Equipment.code)
        return Equipment.get_many(query, offset=offset, limit=limit)

    @classmethod
    def update(cls, equipment_id, **fields):
        """Edits descriptive fields. Status only changes through the
        ledgers or `override_status`."""
        if forbidden := set(fields) - cls.EDITABLE:
            raise InvalidFieldError(f"Cannot edit: {', '.join(sorted(forbidden))}.")
        for field in ("code", "name", "type"):
            if field in fields and not fields[field]:
                raise InvalidFieldError(f"'{field}' cannot be empty.")
        if "serial" in fields:
            fields["serial"] = fields["serial"] or None
        equipment = cls.get(equipment_id)
        cls._check_unique(
            code=fields.get("code"), serial=fields.get("serial"), exclude_id=equipment.id)
        for field, value in fields.items():
            setattr(equipment, field, value)
        return cls._save(equipment, "update")

    @classmethod
    def override_status(cls, equipment_id, status):
        with StatusCoordinator.transaction() as tx:
            equipment = tx.lock(equipment_id)
            StatusCoordinator.set_status(equipment, status)
        return equipment

    @classmethod
    def is_referenced(cls, equipment_id):
        return any(
            db.query(model.id).filter(model.equipment_id == equipment_id).first()
            for model in (Loan, Assignment, Maintenance)
        )

    @classmethod
    def delete(cls, equipment_id):
        with StatusCoordinator.transaction() as tx:
            equipment = tx.lock(equipment_id)
            code = equipment.code
            if cls.is_referenced(equipment_id):
                raise EquipmentInUseError(
                    f"Equipment '{code}' has loan, assignment or maintenance history.")
            db.delete(equipment)
        logger.info(f"Equipment {code} deleted")
        return True
