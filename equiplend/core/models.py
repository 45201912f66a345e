#!/usr/bin/env python

"""
    Models for Equiplend,
    including the equipment registry tables and the three ledgers
    (loans, assignments, maintenance) that move equipment between states.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import enum
import uuid
import datetime
from sqlalchemy import (
    Column, String, Boolean, Integer, Date, DateTime, Text, Numeric,
    ForeignKey, JSON, Enum as SQLAlchemyEnum
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from sqlalchemy.ext.hybrid import hybrid_property
from equiplend.core.db import session as db, Base


def new_id():
    return str(uuid.uuid4())


def _values(enum_cls):
    return [member.value for member in enum_cls]


def _enum(enum_cls):
    return SQLAlchemyEnum(
        enum_cls, values_callable=_values, native_enum=False,
        validate_strings=True, length=20)


class EquipmentStatus(str, enum.Enum):
    AVAILABLE = "available"
    LOANED = "loaned"
    IN_MAINTENANCE = "in-maintenance"
    DAMAGED = "damaged"
    ASSIGNED = "assigned"
    DONATED = "donated"


class ActiveKind(str, enum.Enum):
    LOAN = "loan"
    ASSIGNMENT = "assignment"
    MAINTENANCE = "maintenance"


class LoanStatus(str, enum.Enum):
    LOANED = "loaned"
    RETURNED = "returned"


class AssignmentStatus(str, enum.Enum):
    ASSIGNED = "assigned"
    RELEASED = "released"
    DONATED = "donated"


class MaintenanceStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MaintenanceType(str, enum.Enum):
    PREVENTIVE = "preventive"
    CORRECTIVE = "corrective"
    PREDICTIVE = "predictive"
    EMERGENCY = "emergency"


class Priority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class BorrowerType(str, enum.Enum):
    COLLABORATOR = "collaborator"
    PARTICIPANT = "participant"

    @classmethod
    def parse(cls, value):
        return parse_aliased(cls, value)


class CollaboratorType(str, enum.Enum):
    COLLABORATOR = "collaborator"
    SCHOLAR = "scholar"

    @classmethod
    def parse(cls, value):
        return parse_aliased(cls, value)


class Condition(str, enum.Enum):
    """Equipment condition reported when an assignment is released."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    DAMAGED = "damaged"

    @classmethod
    def parse(cls, value):
        return parse_aliased(cls, value)

    @property
    def needs_maintenance(self):
        return self in (Condition.FAIR, Condition.DAMAGED)


# Spanish labels used by the front office
ALIASES = {
    Condition: {
        "excelente": "excellent",
        "bueno": "good",
        "regular": "fair",
        "dañado": "damaged",
        "danado": "damaged",
    },
    BorrowerType: {
        "colaborador": "collaborator",
        "participante": "participant",
    },
    CollaboratorType: {
        "colaborador": "collaborator",
        "becado": "scholar",
    },
}


def parse_aliased(enum_cls, value):
    """Case-insensitive enum lookup that also accepts the Spanish labels.
    Raises ValueError for anything else."""
    if isinstance(value, enum_cls):
        return value
    key = str(value).strip().lower()
    return enum_cls(ALIASES.get(enum_cls, {}).get(key, key))


class Equipment(Base):
    __tablename__ = 'equipment'

    id = Column(String(36), primary_key=True, default=new_id)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    serial = Column(String(100), unique=True, nullable=True)
    type = Column(String(50), nullable=False)
    status = Column(_enum(EquipmentStatus), default=EquipmentStatus.AVAILABLE, nullable=False)
    description = Column(Text)
    created_by = Column(String(36))
    # Ledger row currently holding this equipment, if any
    active_kind = Column(_enum(ActiveKind), nullable=True)
    active_entry_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    loans = relationship('Loan', back_populates='equipment')
    assignments = relationship('Assignment', back_populates='equipment')
    maintenances = relationship('Maintenance', back_populates='equipment')

    @property
    def is_held(self):
        return self.active_kind is not None

    @classmethod
    def exists(cls, equipment_id):
        return db.get(cls, equipment_id) if equipment_id else None

    def __repr__(self):
        return f"<Equipment {self.code} {self.status.value if self.status else None}>"


class Collaborator(Base):
    __tablename__ = 'collaborators'

    id = Column(String(36), primary_key=True, default=new_id)
    full_name = Column(String(150), nullable=False)
    position = Column(String(100))
    program = Column(String(100))
    contact = Column(String(150))
    type = Column(_enum(CollaboratorType), default=CollaboratorType.COLLABORATOR, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    assignments = relationship('Assignment', back_populates='collaborator')

    @classmethod
    def exists(cls, collaborator_id):
        return db.get(cls, collaborator_id) if collaborator_id else None


class Loan(Base):
    __tablename__ = 'loans'

    id = Column(String(36), primary_key=True, default=new_id)
    equipment_id = Column(String(36), ForeignKey('equipment.id'), nullable=False, index=True)
    borrower_name = Column(String(150), nullable=False)
    borrower_contact = Column(String(150))
    borrower_type = Column(_enum(BorrowerType), default=BorrowerType.PARTICIPANT, nullable=False)
    responsible_party_name = Column(String(150))
    accessories = Column(JSON)
    loan_date = Column(Date, default=datetime.date.today, nullable=False)
    due_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)
    status = Column(_enum(LoanStatus), default=LoanStatus.LOANED, nullable=False)
    overdue_days = Column(Integer, default=0, nullable=False)
    total_fine = Column(Numeric(10, 2), default=0, nullable=False)
    observations = Column(Text)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    equipment = relationship('Equipment', back_populates='loans')

    @hybrid_property
    def is_active(self):
        return self.status == LoanStatus.LOANED

    @classmethod
    def exists(cls, loan_id):
        return db.get(cls, loan_id) if loan_id else None


class Assignment(Base):
    __tablename__ = 'assignments'

    id = Column(String(36), primary_key=True, default=new_id)
    equipment_id = Column(String(36), ForeignKey('equipment.id'), nullable=False, index=True)
    collaborator_id = Column(String(36), ForeignKey('collaborators.id'), nullable=False, index=True)
    assignment_date = Column(Date, default=datetime.date.today, nullable=False)
    release_date = Column(Date, nullable=True)
    status = Column(_enum(AssignmentStatus), default=AssignmentStatus.ASSIGNED, nullable=False)
    observations = Column(Text)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    equipment = relationship('Equipment', back_populates='assignments')
    collaborator = relationship('Collaborator', back_populates='assignments')

    @hybrid_property
    def is_active(self):
        return self.status == AssignmentStatus.ASSIGNED

    @classmethod
    def exists(cls, assignment_id):
        return db.get(cls, assignment_id) if assignment_id else None


class Maintenance(Base):
    __tablename__ = 'maintenances'

    id = Column(String(36), primary_key=True, default=new_id)
    equipment_id = Column(String(36), ForeignKey('equipment.id'), nullable=False, index=True)
    scheduled_date = Column(Date, nullable=False)
    performed_date = Column(Date, nullable=True)
    type = Column(_enum(MaintenanceType), nullable=False)
    priority = Column(_enum(Priority), nullable=False)
    status = Column(_enum(MaintenanceStatus), default=MaintenanceStatus.SCHEDULED, nullable=False)
    technician = Column(String(150))
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    equipment = relationship('Equipment', back_populates='maintenances')

    @property
    def is_open(self):
        return self.status in (MaintenanceStatus.SCHEDULED, MaintenanceStatus.IN_PROGRESS)

    @classmethod
    def exists(cls, maintenance_id):
        return db.get(cls, maintenance_id) if maintenance_id else None


class Setting(Base):
    """Key/value configuration rows edited by administrators."""
    __tablename__ = 'settings'

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    category = Column(String(50))
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())
