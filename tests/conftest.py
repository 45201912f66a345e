#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.conftest
    ~~~~~~~~~~~~~~

    Shared fixtures: a fresh SQLite database per test, bound to the
    thread-local session the registries and ledgers use.

    :copyright: (c) 2025 by Authors.
    :license: see LICENSE for more details.
"""

import os
os.environ["TESTING"] = "true"

import datetime
import pytest
from equiplend.core.db import Base, bind, make_engine, session as db
from equiplend.core.models import Equipment, EquipmentStatus, Loan, Assignment, Maintenance
from equiplend.core.models import AssignmentStatus, LoanStatus, MaintenanceStatus
from equiplend.core.equipment import EquipmentRegistry
from equiplend.core.collaborators import CollaboratorRegistry
from equiplend.core.settings import Settings

TODAY = datetime.date.today()


def days(n):
    return TODAY + datetime.timedelta(days=n)


@pytest.fixture
def day():
    return days


@pytest.fixture
def engine():
    engine = make_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    bind(engine)
    try:
        yield engine
    finally:
        db.remove()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(engine):
    return db


@pytest.fixture
def make_equipment(db_session):
    counter = iter(range(1, 10_000))

    def _make(**kwargs):
        n = next(counter)
        fields = {"code": f"EQ-{n:03d}", "name": f"Laptop {n}", "type": "laptop"}
        fields.update(kwargs)
        return EquipmentRegistry.create(**fields)
    return _make


@pytest.fixture
def equipment(make_equipment):
    return make_equipment()


@pytest.fixture
def collaborator(db_session):
    return CollaboratorRegistry.create(
        full_name="Ana Pérez", position="Analyst", program="Becas")


@pytest.fixture
def fine_per_day(db_session):
    Settings.put("fine_per_day", 5, category="loans")
    return 5


@pytest.fixture
def invariant(db_session):
    return assert_consistent


def assert_consistent(equipment_id):
    """At most one active ledger entry holds the equipment, and its
    status and active reference agree with it."""
    db.expire_all()
    equipment = db.get(Equipment, equipment_id)
    holders = (
        [("loan", l.id) for l in db.query(Loan).filter_by(
            equipment_id=equipment_id, status=LoanStatus.LOANED)] +
        [("assignment", a.id) for a in db.query(Assignment).filter_by(
            equipment_id=equipment_id, status=AssignmentStatus.ASSIGNED)] +
        [("maintenance", m.id) for m in db.query(Maintenance).filter_by(
            equipment_id=equipment_id, status=MaintenanceStatus.IN_PROGRESS)]
    )
    assert len(holders) <= 1, holders
    expected = {
        "loan": EquipmentStatus.LOANED,
        "assignment": EquipmentStatus.ASSIGNED,
        "maintenance": EquipmentStatus.IN_MAINTENANCE,
    }
    if holders:
        kind, entry_id = holders[0]
        assert equipment.active_kind.value == kind
        assert equipment.active_entry_id == entry_id
        assert equipment.status == expected[kind]
    else:
        assert equipment.active_kind is None
        assert equipment.status not in (EquipmentStatus.LOANED, EquipmentStatus.ASSIGNED)
    return equipment
