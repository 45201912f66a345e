#!/usr/bin/env python

"""
    Assignment Ledger for Equiplend: longer-term hand-offs of equipment to
    registered collaborators, ended by a release or a donation.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
import datetime
from equiplend.core.db import session as db
from equiplend.core.models import (
    new_id,
    Assignment,
    AssignmentStatus,
    ActiveKind,
    Collaborator,
    Condition,
    EquipmentStatus,
)
from equiplend.core.coordinator import StatusCoordinator
from equiplend.core.utils import require, as_date
from equiplend.core.exceptions import (
    AssignmentNotFoundError,
    CollaboratorNotFoundError,
    CollaboratorInactiveError,
    InvalidTransitionError,
    InvalidFieldError,
)

logger = logging.getLogger(__name__)


class AssignmentLedger:

    @classmethod
    def get(cls, assignment_id):
        if assignment := Assignment.exists(assignment_id):
            return assignment
        raise AssignmentNotFoundError(f"Assignment '{assignment_id}' not found.")

    @classmethod
    def list(cls, equipment_id=None, collaborator_id=None, status=None, offset=None, limit=None):
        query = db.query(Assignment)
        if equipment_id:
            query = query.filter(Assignment.equipment_id == equipment_id)
        if collaborator_id:
            query = query.filter(Assignment.collaborator_id == collaborator_id)
        if status:
            try:
                query = query.filter(Assignment.status == AssignmentStatus(status))
            except ValueError:
                raise InvalidFieldError(f"Unknown assignment status '{status}'.")
        query = query.order_by(Assignment.created_at.desc())
        return Assignment.get_many(query, offset=offset, limit=limit)

    @classmethod
    def _active_collaborator(cls, collaborator_id):
        collaborator = Collaborator.exists(collaborator_id)
        if collaborator is None:
            raise CollaboratorNotFoundError(f"Collaborator '{collaborator_id}' not found.")
        if not collaborator.is_active:
            raise CollaboratorInactiveError(
                f"Collaborator '{collaborator.full_name}' is inactive.")
        return collaborator

    @classmethod
    def _reload(cls, assignment_id):
        """Re-reads the assignment once its equipment is locked."""
        return (
            db.query(Assignment)
            .filter(Assignment.id == assignment_id)
            .populate_existing()
            .one()
        )

    @classmethod
    def _require_active(cls, assignment, action):
        if not assignment.is_active:
            raise InvalidTransitionError(
                f"Assignment '{assignment.id}' is {assignment.status.value} and cannot be {action}.")

    @classmethod
    def create(cls, equipment_id, collaborator_id, assignment_date, observations=None):
        """Hands available equipment to an active collaborator."""
        require(
            equipment_id=equipment_id,
            collaborator_id=collaborator_id,
            assignment_date=assignment_date,
        )
        assignment_date = as_date(assignment_date, "assignment_date")

        with StatusCoordinator.transaction() as tx:
            equipment = tx.lock(equipment_id)
            collaborator = cls._active_collaborator(collaborator_id)
            assignment = Assignment(
                id=new_id(),
                equipment=equipment,
                collaborator=collaborator,
                assignment_date=assignment_date,
                status=AssignmentStatus.ASSIGNED,
                observations=observations,
            )
            StatusCoordinator.claim(equipment, ActiveKind.ASSIGNMENT, assignment.id)
            db.add(assignment)
        logger.info(f"Assignment {assignment.id}: equipment {equipment_id} -> collaborator {collaborator_id}")
        return assignment

    @classmethod
    def update(cls, assignment_id, equipment_id=None, collaborator_id=None,
               assignment_date=None, observations=None):
        """
        Edits an assignment. Moving it to other equipment frees the old
        equipment and claims the new one in the same transaction; if the
        new equipment is unavailable nothing changes.
        """
        assignment = cls.get(assignment_id)
        assignment_date = as_date(assignment_date, "assignment_date")

        with StatusCoordinator.transaction() as tx:
            if equipment_id and equipment_id != assignment.equipment_id:
                old, new = tx.lock_many(assignment.equipment_id, equipment_id)
                assignment = cls._reload(assignment_id)
                cls._require_active(assignment, "moved to other equipment")
                StatusCoordinator.vacate(old, ActiveKind.ASSIGNMENT, assignment.id, EquipmentStatus.AVAILABLE)
                StatusCoordinator.claim(new, ActiveKind.ASSIGNMENT, assignment.id)
                assignment.equipment = new
                logger.info(f"Assignment {assignment.id} moved from {old.code} to {new.code}")
            if collaborator_id and collaborator_id != assignment.collaborator_id:
                assignment.collaborator = cls._active_collaborator(collaborator_id)
            if assignment_date:
                assignment.assignment_date = assignment_date
            if observations is not None:
                assignment.observations = observations
        return assignment

    @classmethod
    def release(cls, assignment_id, condition, release_date=None, observations=None):
        """
        Ends an assignment. Equipment returned in fair or damaged
        condition goes to maintenance; otherwise it becomes available.
        """
        require(condition=condition)
        try:
            condition = Condition.parse(condition)
        except ValueError:
            raise InvalidFieldError(f"Unknown condition '{condition}'.")
        release_date = as_date(release_date, "release_date") or datetime.date.today()
        assignment = cls.get(assignment_id)

        with StatusCoordinator.transaction() as tx:
            equipment = tx.lock(assignment.equipment_id)
            assignment = cls._reload(assignment_id)
            cls._require_active(assignment, "released")
            assignment.status = AssignmentStatus.RELEASED
            assignment.release_date = release_date
            if observations is not None:
                assignment.observations = observations
            to_status = (
                EquipmentStatus.IN_MAINTENANCE if condition.needs_maintenance
                else EquipmentStatus.AVAILABLE
            )
            StatusCoordinator.vacate(equipment, ActiveKind.ASSIGNMENT, assignment.id, to_status)
        logger.info(f"Assignment {assignment.id} released ({condition.value})")
        return assignment

    @classmethod
    def donate(cls, assignment_id):
        """Gives the equipment away for good. There is no way back."""
        assignment = cls.get(assignment_id)

        with StatusCoordinator.transaction() as tx:
            equipment = tx.lock(assignment.equipment_id)
            assignment = cls._reload(assignment_id)
            cls._require_active(assignment, "donated")
            assignment.status = AssignmentStatus.DONATED
            assignment.release_date = datetime.date.today()
            StatusCoordinator.vacate(equipment, ActiveKind.ASSIGNMENT, assignment.id, EquipmentStatus.DONATED)
        logger.info(f"Assignment {assignment.id} donated, equipment {equipment.code} retired")
        return assignment
