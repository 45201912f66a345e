#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.test_equipment
    ~~~~~~~~~~~~~~~~~~~~

    Equipment and collaborator registries, and the settings store.

    :copyright: (c) 2025 by Authors.
    :license: see LICENSE for more details.
"""

import pytest
from decimal import Decimal
from equiplend.core.models import EquipmentStatus, Condition, CollaboratorType
from equiplend.core.equipment import EquipmentRegistry
from equiplend.core.collaborators import CollaboratorRegistry
from equiplend.core.loans import LoanLedger
from equiplend.core.maintenance import MaintenanceLedger
from equiplend.core.settings import Settings
from equiplend.core.exceptions import (
    CollaboratorNotFoundError,
    EquipmentExistsError,
    EquipmentInUseError,
    EquipmentNotFoundError,
    InvalidFieldError,
    MissingFieldError,
    SettingNotFoundError,
)


def test_register_equipment(db_session):
    equipment = EquipmentRegistry.create(
        "EQ-100", "ThinkPad T14", "laptop", serial="SN-1", description="14 inch")
    assert equipment.id
    assert equipment.status == EquipmentStatus.AVAILABLE
    assert not equipment.is_held
    assert EquipmentRegistry.get(equipment.id).serial == "SN-1"


def test_register_requires_fields(db_session):
    with pytest.raises(MissingFieldError):
        EquipmentRegistry.create("EQ-100", "", "laptop")


def test_code_and_serial_are_unique(make_equipment):
    make_equipment(code="EQ-100", serial="SN-1")
    with pytest.raises(EquipmentExistsError) as excinfo:
        make_equipment(code="EQ-100")
    assert "code" in str(excinfo.value)
    with pytest.raises(EquipmentExistsError) as excinfo:
        make_equipment(serial="SN-1")
    assert "serial" in str(excinfo.value)
    # Several rows without a serial are fine
    make_equipment()
    make_equipment()


def test_get_missing_equipment(db_session):
    with pytest.raises(EquipmentNotFoundError):
        EquipmentRegistry.get("does-not-exist")


def test_update_descriptive_fields(make_equipment):
    equipment = make_equipment()
    other = make_equipment(serial="SN-9")
    equipment = EquipmentRegistry.update(equipment.id, name="Renamed", description="Spare")
    assert equipment.name == "Renamed"
    assert equipment.description == "Spare"

    with pytest.raises(EquipmentExistsError):
        EquipmentRegistry.update(equipment.id, code=other.code)
    with pytest.raises(InvalidFieldError):
        EquipmentRegistry.update(equipment.id, name="")


def test_clearing_serial_stores_null(make_equipment):
    a = make_equipment(serial="SN-1")
    b = make_equipment(serial="SN-2")
    assert EquipmentRegistry.update(a.id, serial="").serial is None
    assert EquipmentRegistry.update(b.id, serial="").serial is None
    # A cleared serial can be taken by another equipment
    assert EquipmentRegistry.update(b.id, serial="SN-1").serial == "SN-1"


def test_status_is_not_editable(equipment):
    with pytest.raises(InvalidFieldError):
        EquipmentRegistry.update(equipment.id, status="loaned")
    assert EquipmentRegistry.get(equipment.id).status == EquipmentStatus.AVAILABLE


def test_override_status(equipment, day, invariant):
    EquipmentRegistry.override_status(equipment.id, "damaged")
    assert invariant(equipment.id).status == EquipmentStatus.DAMAGED
    EquipmentRegistry.override_status(equipment.id, "available")

    LoanLedger.create(equipment.id, "Juan Gómez", day(3))
    with pytest.raises(EquipmentInUseError):
        EquipmentRegistry.override_status(equipment.id, "available")
    assert invariant(equipment.id).status == EquipmentStatus.LOANED


def test_delete_equipment(make_equipment, day):
    unused, used = make_equipment(), make_equipment()
    assert EquipmentRegistry.delete(unused.id)
    with pytest.raises(EquipmentNotFoundError):
        EquipmentRegistry.get(unused.id)

    loan = LoanLedger.create(used.id, "Juan Gómez", day(3))
    LoanLedger.return_loan(loan.id)
    with pytest.raises(EquipmentInUseError):
        EquipmentRegistry.delete(used.id)
    assert EquipmentRegistry.get(used.id)


def test_delete_equipment_with_scheduled_maintenance(equipment, day):
    MaintenanceLedger.create(equipment.id, day(5), "preventive", "low")
    with pytest.raises(EquipmentInUseError):
        EquipmentRegistry.delete(equipment.id)


def test_list_equipment_filters(make_equipment, day):
    laptop = make_equipment(name="Dell Latitude", serial="DL-1")
    projector = make_equipment(name="Epson", type="projector")
    LoanLedger.create(projector.id, "Juan Gómez", day(3))

    assert {e.id for e in EquipmentRegistry.list()} == {laptop.id, projector.id}
    assert [e.id for e in EquipmentRegistry.list(status="loaned")] == [projector.id]
    assert [e.id for e in EquipmentRegistry.list(type="laptop")] == [laptop.id]
    assert [e.id for e in EquipmentRegistry.list(search="latitude")] == [laptop.id]
    assert [e.id for e in EquipmentRegistry.list(search="dl-")] == [laptop.id]
    assert len(EquipmentRegistry.list(limit=1)) == 1
    with pytest.raises(InvalidFieldError):
        EquipmentRegistry.list(status="stolen")


@pytest.mark.parametrize("value, expected", [
    ("excelente", Condition.EXCELLENT),
    ("BUENO", Condition.GOOD),
    (" regular ", Condition.FAIR),
    ("dañado", Condition.DAMAGED),
    ("danado", Condition.DAMAGED),
    ("fair", Condition.FAIR),
])
def test_condition_aliases(value, expected):
    assert Condition.parse(value) is expected


def test_collaborators(db_session):
    ana = CollaboratorRegistry.create(full_name="Ana Pérez", program="Becas")
    luis = CollaboratorRegistry.create(full_name="Luis Torres", position="Driver")
    assert ana.is_active

    assert [c.id for c in CollaboratorRegistry.list()] == [ana.id, luis.id]
    assert [c.id for c in CollaboratorRegistry.list(search="becas")] == [ana.id]

    CollaboratorRegistry.update(luis.id, is_active=False, contact="luis@example.org")
    assert [c.id for c in CollaboratorRegistry.list()] == [ana.id]
    assert len(CollaboratorRegistry.list(include_inactive=True)) == 2
    assert CollaboratorRegistry.get(luis.id).contact == "luis@example.org"


def test_collaborator_validation(db_session):
    with pytest.raises(MissingFieldError):
        CollaboratorRegistry.create(full_name="")
    with pytest.raises(CollaboratorNotFoundError):
        CollaboratorRegistry.get("does-not-exist")
    ana = CollaboratorRegistry.create(full_name="Ana Pérez")
    with pytest.raises(InvalidFieldError):
        CollaboratorRegistry.update(ana.id, full_name="")
    with pytest.raises(InvalidFieldError):
        CollaboratorRegistry.update(ana.id, id="other")


@pytest.mark.parametrize("fields", [
    {"is_active": None},
    {"is_active": "yes"},
    {"full_name": None},
    {"type": None},
    {"type": "intern"},
])
def test_collaborator_update_rejects_bad_values(db_session, fields):
    ana = CollaboratorRegistry.create(full_name="Ana Pérez")
    with pytest.raises(InvalidFieldError):
        CollaboratorRegistry.update(ana.id, **fields)
    ana = CollaboratorRegistry.get(ana.id)
    assert ana.is_active
    assert ana.full_name == "Ana Pérez"
    assert ana.type == CollaboratorType.COLLABORATOR


def test_collaborator_types(db_session):
    ana = CollaboratorRegistry.create(full_name="Ana Pérez")
    luis = CollaboratorRegistry.create(full_name="Luis Torres", type="Becado")
    assert ana.type == CollaboratorType.COLLABORATOR
    assert luis.type == CollaboratorType.SCHOLAR

    assert [c.id for c in CollaboratorRegistry.list(type="scholar")] == [luis.id]
    assert [c.id for c in CollaboratorRegistry.list(type="colaborador")] == [ana.id]

    CollaboratorRegistry.update(ana.id, type="becado")
    assert len(CollaboratorRegistry.list(type=CollaboratorType.SCHOLAR)) == 2

    with pytest.raises(InvalidFieldError):
        CollaboratorRegistry.create(full_name="Marta Díaz", type="intern")
    with pytest.raises(InvalidFieldError):
        CollaboratorRegistry.list(type="intern")


def test_settings(db_session):
    assert Settings.fine_per_day() == Decimal(0)
    with pytest.raises(SettingNotFoundError):
        Settings.get("fine_per_day")

    setting = Settings.put("fine_per_day", 2.5, category="loans")
    assert setting == {"key": "fine_per_day", "value": 2.5, "category": "loans"}
    assert Settings.fine_per_day() == Decimal("2.5")

    Settings.put("fine_per_day", "7")
    assert Settings.get("fine_per_day")["category"] == "loans"
    assert Settings.fine_per_day() == Decimal(7)

    Settings.put("labels", {"es": "Préstamo"})
    assert Settings.all() == {"fine_per_day": 7, "labels": {"es": "Préstamo"}}
