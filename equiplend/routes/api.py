#!/usr/bin/env python

"""
    API routes for Equiplend: equipment, collaborators, loans,
    assignments, maintenance and settings.

    Handlers stay thin: they unpack the request and hand it to the
    registries and ledgers in `equiplend.core`; ledger errors are turned
    into HTTP responses by the handlers registered in `equiplend.app`.

    Ledger calls block on the database (and on equipment row locks), so
    each one runs on a worker thread through `offload`, which serializes
    the result and removes that thread's session before returning.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import asyncio
import datetime
from typing import Optional, List
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from equiplend.configs import REMINDER_WINDOW_DAYS, PREDICTIVE_THRESHOLD_DAYS
from equiplend.core.db import session as db
from equiplend.core.equipment import EquipmentRegistry
from equiplend.core.collaborators import CollaboratorRegistry
from equiplend.core.loans import LoanLedger
from equiplend.core.assignments import AssignmentLedger
from equiplend.core.maintenance import MaintenanceLedger
from equiplend.core.settings import Settings
from equiplend.schemas.equipment import Equipment
from equiplend.schemas.collaborator import Collaborator
from equiplend.schemas.loan import Loan
from equiplend.schemas.assignment import Assignment
from equiplend.schemas.maintenance import Maintenance, PredictiveEntry
from equiplend.routes.schemas import (
    EquipmentCreateRequest,
    EquipmentUpdateRequest,
    StatusOverrideRequest,
    CollaboratorCreateRequest,
    CollaboratorUpdateRequest,
    LoanRequest,
    ExtendRequest,
    ReturnRequest,
    AssignmentRequest,
    AssignmentUpdateRequest,
    ReleaseRequest,
    MaintenanceRequest,
    MaintenanceUpdateRequest,
    CompleteRequest,
    SettingRequest,
)

router = APIRouter()


async def offload(call, *args, schema=None, **kwargs):
    """Runs `call` on a worker thread. With `schema`, ORM results are
    validated into it there, while their session is still open."""
    def work():
        try:
            result = call(*args, **kwargs)
            if schema is None:
                return result
            return TypeAdapter(schema).validate_python(result, from_attributes=True)
        finally:
            db.remove()
    return await asyncio.to_thread(work)


def _ping():
    db.execute(text("SELECT 1"))


@router.get('/health')
async def health():
    try:
        await offload(_ping)
        return {"ok": True, "status": "up", "db": "up",
                "time": datetime.datetime.now(datetime.timezone.utc).isoformat()}
    except SQLAlchemyError as e:
        return JSONResponse(status_code=500, content={
            "ok": False, "status": "up", "db": "down", "error": str(e)})


# Equipment

@router.get('/equipment', response_model=List[Equipment])
async def list_equipment(status: Optional[str] = None, type: Optional[str] = None,
                         search: Optional[str] = None, offset: Optional[int] = None,
                         limit: Optional[int] = None):
    return await offload(
        EquipmentRegistry.list, schema=List[Equipment],
        status=status, type=type, search=search, offset=offset, limit=limit)

@router.post('/equipment', response_model=Equipment, status_code=status.HTTP_201_CREATED)
async def create_equipment(body: EquipmentCreateRequest):
    return await offload(EquipmentRegistry.create, schema=Equipment, **body.model_dump())

@router.get('/equipment/{equipment_id}', response_model=Equipment)
async def get_equipment(equipment_id: str):
    return await offload(EquipmentRegistry.get, equipment_id, schema=Equipment)

@router.patch('/equipment/{equipment_id}', response_model=Equipment)
async def update_equipment(equipment_id: str, body: EquipmentUpdateRequest):
    return await offload(
        EquipmentRegistry.update, equipment_id, schema=Equipment,
        **body.model_dump(exclude_unset=True))

@router.post('/equipment/{equipment_id}/status', response_model=Equipment)
async def override_equipment_status(equipment_id: str, body: StatusOverrideRequest):
    return await offload(
        EquipmentRegistry.override_status, equipment_id, body.status, schema=Equipment)

@router.delete('/equipment/{equipment_id}')
async def delete_equipment(equipment_id: str):
    await offload(EquipmentRegistry.delete, equipment_id)
    return {"ok": True}


# Collaborators

@router.get('/collaborators', response_model=List[Collaborator])
async def list_collaborators(search: Optional[str] = None, type: Optional[str] = None,
                             include_inactive: bool = False,
                             offset: Optional[int] = None, limit: Optional[int] = None):
    return await offload(
        CollaboratorRegistry.list, schema=List[Collaborator], search=search, type=type,
        include_inactive=include_inactive, offset=offset, limit=limit)

@router.post('/collaborators', response_model=Collaborator, status_code=status.HTTP_201_CREATED)
async def create_collaborator(body: CollaboratorCreateRequest):
    return await offload(CollaboratorRegistry.create, schema=Collaborator, **body.model_dump())

@router.get('/collaborators/{collaborator_id}', response_model=Collaborator)
async def get_collaborator(collaborator_id: str):
    return await offload(CollaboratorRegistry.get, collaborator_id, schema=Collaborator)

@router.patch('/collaborators/{collaborator_id}', response_model=Collaborator)
async def update_collaborator(collaborator_id: str, body: CollaboratorUpdateRequest):
    return await offload(
        CollaboratorRegistry.update, collaborator_id, schema=Collaborator,
        **body.model_dump(exclude_unset=True))


# Loans

@router.get('/loans', response_model=List[Loan])
async def list_loans(equipment_id: Optional[str] = None, status: Optional[str] = None,
                     offset: Optional[int] = None, limit: Optional[int] = None):
    return await offload(
        LoanLedger.list, schema=List[Loan],
        equipment_id=equipment_id, status=status, offset=offset, limit=limit)

@router.get('/loans/overdue', response_model=List[Loan])
async def overdue_loans():
    return await offload(LoanLedger.overdue, schema=List[Loan])

@router.post('/loans', response_model=Loan, status_code=status.HTTP_201_CREATED)
async def create_loan(body: LoanRequest):
    return await offload(LoanLedger.create, schema=Loan, **body.model_dump())

@router.get('/loans/{loan_id}', response_model=Loan)
async def get_loan(loan_id: str):
    return await offload(LoanLedger.get, loan_id, schema=Loan)

@router.patch('/loans/{loan_id}/extend', response_model=Loan)
async def extend_loan(loan_id: str, body: ExtendRequest):
    return await offload(LoanLedger.extend, loan_id, body.due_date, schema=Loan)

@router.post('/loans/{loan_id}/return', response_model=Loan)
async def return_loan(loan_id: str, body: Optional[ReturnRequest] = None):
    return await offload(
        LoanLedger.return_loan, loan_id, schema=Loan,
        return_date=body.return_date if body else None)


# Assignments

@router.get('/assignments', response_model=List[Assignment])
async def list_assignments(equipment_id: Optional[str] = None, collaborator_id: Optional[str] = None,
                           status: Optional[str] = None, offset: Optional[int] = None,
                           limit: Optional[int] = None):
    return await offload(
        AssignmentLedger.list, schema=List[Assignment],
        equipment_id=equipment_id, collaborator_id=collaborator_id,
        status=status, offset=offset, limit=limit)

@router.post('/assignments', response_model=Assignment, status_code=status.HTTP_201_CREATED)
async def create_assignment(body: AssignmentRequest):
    return await offload(AssignmentLedger.create, schema=Assignment, **body.model_dump())

@router.get('/assignments/{assignment_id}', response_model=Assignment)
async def get_assignment(assignment_id: str):
    return await offload(AssignmentLedger.get, assignment_id, schema=Assignment)

@router.patch('/assignments/{assignment_id}', response_model=Assignment)
async def update_assignment(assignment_id: str, body: AssignmentUpdateRequest):
    return await offload(
        AssignmentLedger.update, assignment_id, schema=Assignment,
        **body.model_dump(exclude_unset=True))

@router.post('/assignments/{assignment_id}/release', response_model=Assignment)
async def release_assignment(assignment_id: str, body: ReleaseRequest):
    return await offload(
        AssignmentLedger.release, assignment_id, schema=Assignment, **body.model_dump())

@router.post('/assignments/{assignment_id}/donate', response_model=Assignment)
async def donate_assignment(assignment_id: str):
    return await offload(AssignmentLedger.donate, assignment_id, schema=Assignment)


# Maintenance

@router.get('/maintenance', response_model=List[Maintenance])
async def list_maintenance(equipment_id: Optional[str] = None, status: Optional[str] = None,
                           offset: Optional[int] = None, limit: Optional[int] = None):
    return await offload(
        MaintenanceLedger.list, schema=List[Maintenance],
        equipment_id=equipment_id, status=status, offset=offset, limit=limit)

@router.get('/maintenance/reminders')
async def maintenance_reminders(days: int = REMINDER_WINDOW_DAYS):
    due_soon = await offload(MaintenanceLedger.due_soon, schema=List[Maintenance], days=days)
    overdue = await offload(MaintenanceLedger.overdue, schema=List[Maintenance])
    return {
        "due_soon": [m.model_dump(mode="json") for m in due_soon],
        "overdue": [m.model_dump(mode="json") for m in overdue],
    }

@router.get('/maintenance/predictive', response_model=List[PredictiveEntry])
async def maintenance_predictive(threshold_days: int = PREDICTIVE_THRESHOLD_DAYS):
    return await offload(MaintenanceLedger.predictive_report, threshold_days=threshold_days)

@router.post('/maintenance', response_model=Maintenance, status_code=status.HTTP_201_CREATED)
async def create_maintenance(body: MaintenanceRequest):
    return await offload(MaintenanceLedger.create, schema=Maintenance, **body.model_dump())

@router.get('/maintenance/{maintenance_id}', response_model=Maintenance)
async def get_maintenance(maintenance_id: str):
    return await offload(MaintenanceLedger.get, maintenance_id, schema=Maintenance)

@router.patch('/maintenance/{maintenance_id}', response_model=Maintenance)
async def update_maintenance(maintenance_id: str, body: MaintenanceUpdateRequest):
    return await offload(
        MaintenanceLedger.update, maintenance_id, schema=Maintenance,
        **body.model_dump(exclude_unset=True))

@router.delete('/maintenance/{maintenance_id}')
async def delete_maintenance(maintenance_id: str):
    await offload(MaintenanceLedger.delete, maintenance_id)
    return {"ok": True}

@router.post('/maintenance/{maintenance_id}/start', response_model=Maintenance)
async def start_maintenance(maintenance_id: str):
    return await offload(MaintenanceLedger.start, maintenance_id, schema=Maintenance)

@router.post('/maintenance/{maintenance_id}/complete', response_model=Maintenance)
async def complete_maintenance(maintenance_id: str, body: CompleteRequest):
    return await offload(
        MaintenanceLedger.complete, maintenance_id, body.performed_date, schema=Maintenance)

@router.post('/maintenance/{maintenance_id}/cancel', response_model=Maintenance)
async def cancel_maintenance(maintenance_id: str):
    return await offload(MaintenanceLedger.cancel, maintenance_id, schema=Maintenance)


# Settings

@router.get('/settings')
async def get_settings():
    return await offload(Settings.all)

@router.get('/settings/{key}')
async def get_setting(key: str):
    return await offload(Settings.get, key)

@router.put('/settings/{key}')
async def put_setting(key: str, body: SettingRequest):
    return await offload(Settings.put, key, body.value, category=body.category)
