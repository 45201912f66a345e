#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.test_api
    ~~~~~~~~~~~~~~

    HTTP surface: request handling and the mapping of ledger errors to
    status codes.

    :copyright: (c) 2025 by Authors.
    :license: see LICENSE for more details.
"""

import threading
import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient
from equiplend.app import app
from equiplend.core.coordinator import StatusCoordinator
from equiplend.core.db import session as db
from equiplend.core.equipment import EquipmentRegistry

API = "/v1/api"


@pytest.fixture
def client(engine):
    return TestClient(app)


@pytest.fixture
def laptop(client):
    response = client.post(f"{API}/equipment", json={
        "code": "LAP-001", "name": "Dell Latitude 5420", "type": "laptop"})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def person(client):
    response = client.post(f"{API}/collaborators", json={"full_name": "Ana Pérez"})
    assert response.status_code == 201
    return response.json()


def test_health(client):
    response = client.get(f"{API}/health")
    assert response.status_code == 200
    assert response.json()["db"] == "up"


def test_equipment_endpoints(client, laptop):
    assert laptop["status"] == "available"
    assert laptop["active_kind"] is None

    response = client.get(f"{API}/equipment/{laptop['id']}")
    assert response.status_code == 200
    assert response.json()["code"] == "LAP-001"

    response = client.patch(f"{API}/equipment/{laptop['id']}", json={"name": "Latitude"})
    assert response.json()["name"] == "Latitude"

    response = client.post(f"{API}/equipment/{laptop['id']}/status", json={"status": "damaged"})
    assert response.json()["status"] == "damaged"

    response = client.get(f"{API}/equipment", params={"status": "damaged"})
    assert [e["id"] for e in response.json()] == [laptop["id"]]

    response = client.delete(f"{API}/equipment/{laptop['id']}")
    assert response.json() == {"ok": True}
    assert client.get(f"{API}/equipment/{laptop['id']}").status_code == 404


def test_error_responses(client, laptop):
    response = client.post(f"{API}/equipment", json={"code": "LAP-002", "type": "laptop"})
    assert response.status_code == 400
    assert response.json()["error"] == "bad_request"
    assert "name" in response.json()["message"]

    response = client.post(f"{API}/equipment", json={
        "code": "LAP-001", "name": "Copy", "type": "laptop"})
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"

    response = client.get(f"{API}/loans/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "not_found", "message": "Loan 'does-not-exist' not found."}

    response = client.post(f"{API}/loans", json={
        "equipment_id": laptop["id"], "borrower_name": "Juan", "due_date": "next week"})
    assert response.status_code == 400
    assert "due_date" in response.json()["message"]


def test_loan_round_trip_with_fine(client, laptop, day):
    response = client.put(f"{API}/settings/fine_per_day", json={"value": 5, "category": "loans"})
    assert response.json()["value"] == 5

    response = client.post(f"{API}/loans", json={
        "equipment_id": laptop["id"], "borrower_name": "Juan Gómez",
        "due_date": day(7).isoformat()})
    assert response.status_code == 201
    loan = response.json()
    assert loan["status"] == "loaned"
    assert loan["equipment"]["code"] == "LAP-001"
    assert client.get(f"{API}/equipment/{laptop['id']}").json()["status"] == "loaned"

    response = client.post(f"{API}/loans", json={
        "equipment_id": laptop["id"], "borrower_name": "María", "due_date": day(7).isoformat()})
    assert response.status_code == 409

    response = client.post(f"{API}/loans/{loan['id']}/return",
                           json={"return_date": day(10).isoformat()})
    assert response.status_code == 200
    returned = response.json()
    assert returned["status"] == "returned"
    assert returned["overdue_days"] == 3
    assert returned["total_fine"] == 15
    assert client.get(f"{API}/equipment/{laptop['id']}").json()["status"] == "available"

    # Returning again hands back the stored record
    assert client.post(f"{API}/loans/{loan['id']}/return").json() == returned


def test_assignment_endpoints(client, laptop, person, day):
    response = client.post(f"{API}/assignments", json={
        "equipment_id": laptop["id"], "collaborator_id": person["id"],
        "assignment_date": day(0).isoformat()})
    assert response.status_code == 201
    assignment = response.json()
    assert assignment["collaborator"]["full_name"] == "Ana Pérez"

    response = client.post(f"{API}/assignments/{assignment['id']}/release", json={})
    assert response.status_code == 400

    response = client.post(f"{API}/assignments/{assignment['id']}/release",
                           json={"condition": "dañado"})
    assert response.json()["status"] == "released"
    assert client.get(f"{API}/equipment/{laptop['id']}").json()["status"] == "in-maintenance"

    response = client.post(f"{API}/assignments/{assignment['id']}/donate")
    assert response.status_code == 409


def test_inactive_collaborator_is_a_conflict(client, laptop, person, day):
    client.patch(f"{API}/collaborators/{person['id']}", json={"is_active": False})
    response = client.post(f"{API}/assignments", json={
        "equipment_id": laptop["id"], "collaborator_id": person["id"],
        "assignment_date": day(0).isoformat()})
    assert response.status_code == 409
    assert client.get(f"{API}/collaborators").json() == []


def test_maintenance_endpoints(client, laptop, day):
    response = client.post(f"{API}/maintenance", json={
        "equipment_id": laptop["id"], "scheduled_date": day(1).isoformat(),
        "type": "preventive", "priority": "high"})
    assert response.status_code == 201
    maintenance = response.json()

    response = client.get(f"{API}/maintenance/reminders")
    assert [m["id"] for m in response.json()["due_soon"]] == [maintenance["id"]]

    response = client.post(f"{API}/maintenance/{maintenance['id']}/start")
    assert response.json()["status"] == "in-progress"
    assert client.get(f"{API}/equipment/{laptop['id']}").json()["status"] == "in-maintenance"

    response = client.post(f"{API}/maintenance/{maintenance['id']}/complete", json={})
    assert response.status_code == 400

    response = client.post(f"{API}/maintenance/{maintenance['id']}/complete",
                           json={"performed_date": day(0).isoformat()})
    assert response.json()["status"] == "completed"
    assert client.get(f"{API}/equipment/{laptop['id']}").json()["status"] == "available"

    response = client.get(f"{API}/maintenance/predictive", params={"threshold_days": 30})
    assert response.json()[0]["days_since"] == 0


def test_lock_timeout_is_retryable(client, laptop, day):
    held = StatusCoordinator.mutexes.acquire(laptop["id"])
    try:
        with patch("equiplend.core.coordinator.LOCK_TIMEOUT", 0.05):
            response = client.post(f"{API}/loans", json={
                "equipment_id": laptop["id"], "borrower_name": "Juan",
                "due_date": day(3).isoformat()})
    finally:
        held.release()
    assert response.status_code == 503
    assert response.json()["error"] == "lock_timeout"


def test_null_for_a_required_field_is_a_bad_request(client, laptop, person, day):
    response = client.patch(f"{API}/collaborators/{person['id']}", json={"is_active": None})
    assert response.status_code == 400
    assert response.json()["error"] == "bad_request"
    assert "is_active" in response.json()["message"]
    assert client.get(f"{API}/collaborators/{person['id']}").json()["is_active"] is True

    response = client.patch(f"{API}/equipment/{laptop['id']}", json={"name": None})
    assert response.status_code == 400

    response = client.post(f"{API}/maintenance", json={
        "equipment_id": laptop["id"], "scheduled_date": day(1).isoformat(),
        "type": "preventive", "priority": "high"})
    response = client.patch(f"{API}/maintenance/{response.json()['id']}",
                            json={"scheduled_date": None})
    assert response.status_code == 400


def test_collaborator_type_filter(client, person):
    assert person["type"] == "collaborator"
    response = client.post(f"{API}/collaborators", json={
        "full_name": "Luis Torres", "type": "becado"})
    assert response.json()["type"] == "scholar"

    response = client.get(f"{API}/collaborators", params={"type": "scholar"})
    assert [c["full_name"] for c in response.json()] == ["Luis Torres"]
    assert client.get(f"{API}/collaborators", params={"type": "intern"}).status_code == 400


def test_loan_extension_and_overdue_list(client, laptop, day):
    response = client.post(f"{API}/loans", json={
        "equipment_id": laptop["id"], "borrower_name": "Juan Gómez",
        "due_date": day(-1).isoformat()})
    assert response.status_code == 400
    assert "due_date" in response.json()["message"]

    response = client.post(f"{API}/loans", json={
        "equipment_id": laptop["id"], "borrower_name": "Sofía", "borrower_type": "participante",
        "responsible_party_name": "Carmen Ruiz", "accessories": ["charger"],
        "due_date": day(3).isoformat()})
    assert response.status_code == 201
    loan = response.json()
    assert loan["borrower_type"] == "participant"
    assert loan["responsible_party_name"] == "Carmen Ruiz"
    assert loan["accessories"] == ["charger"]

    response = client.patch(f"{API}/loans/{loan['id']}/extend",
                            json={"due_date": day(9).isoformat()})
    assert response.status_code == 200
    assert response.json()["due_date"] == day(9).isoformat()

    response = client.patch(f"{API}/loans/{loan['id']}/extend",
                            json={"due_date": day(4).isoformat()})
    assert response.status_code == 400

    assert client.get(f"{API}/loans/overdue").json() == []

    client.post(f"{API}/loans/{loan['id']}/return")
    response = client.patch(f"{API}/loans/{loan['id']}/extend",
                            json={"due_date": day(12).isoformat()})
    assert response.status_code == 409


def test_session_is_removed_on_the_thread_that_used_it(client, laptop):
    threads = {}
    get, remove = EquipmentRegistry.get, db.remove

    def tracked_get(equipment_id):
        threads["get"] = threading.get_ident()
        return get(equipment_id)

    def tracked_remove():
        threads["remove"] = threading.get_ident()
        remove()

    with patch.object(EquipmentRegistry, "get", side_effect=tracked_get), \
            patch.object(db, "remove", side_effect=tracked_remove):
        response = client.get(f"{API}/equipment/{laptop['id']}")
    assert response.json()["code"] == "LAP-001"
    assert threads["get"] == threads["remove"]
