#!/usr/bin/env python

"""
    Loan Ledger for Equiplend: short-term checkouts to unregistered
    borrowers, with overdue fines computed at return.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
import datetime
from decimal import Decimal
from equiplend.core.db import session as db
from equiplend.core.models import new_id, Loan, LoanStatus, BorrowerType, ActiveKind, EquipmentStatus
from equiplend.core.coordinator import StatusCoordinator
from equiplend.core.settings import Settings
from equiplend.core.utils import require, as_date, overdue_days, compute_fine
from equiplend.core.exceptions import LoanNotFoundError, InvalidFieldError, InvalidTransitionError

logger = logging.getLogger(__name__)


class LoanLedger:

    @classmethod
    def get(cls, loan_id):
        if loan := Loan.exists(loan_id):
            return loan
        raise LoanNotFoundError(f"Loan '{loan_id}' not found.")

    @classmethod
    def list(cls, equipment_id=None, status=None, offset=None, limit=None):
        query = db.query(Loan)
        if equipment_id:
            query = query.filter(Loan.equipment_id == equipment_id)
        if status:
            try:
                query = query.filter(Loan.status == LoanStatus(status))
            except ValueError:
                raise InvalidFieldError(f"Unknown loan status '{status}'.")
        query = query.order_by(Loan.created_at.desc())
        return Loan.get_many(query, offset=offset, limit=limit)

    @classmethod
    def overdue(cls, today=None):
        """Open loans whose due date has passed."""
        today = today or datetime.date.today()
        return (
            db.query(Loan)
            .filter(Loan.status == LoanStatus.LOANED, Loan.due_date < today)
            .order_by(Loan.due_date)
            .all()
        )

    @classmethod
    def _accessories(cls, accessories):
        if accessories is None:
            return None
        if isinstance(accessories, str) or not isinstance(accessories, (list, tuple)):
            raise InvalidFieldError("'accessories' must be a list of names.")
        return [str(item).strip() for item in accessories if str(item).strip()]

    @classmethod
    def create(cls, equipment_id, borrower_name, due_date, borrower_type=None,
               borrower_contact=None, responsible_party_name=None, accessories=None,
               observations=None):
        """
        Lends available equipment to a borrower.

        Args:
            equipment_id: Equipment to lend.
            borrower_name: Free-text name of the borrower.
            due_date: Date the equipment is expected back, not before today.
            borrower_type: `participant` (default) or `collaborator`.
            responsible_party_name: Who answers for the equipment; defaults
                to the borrower.
            accessories: Names of the items handed over with it.

        Returns:
            The new Loan, status `loaned`.

        Raises:
            MissingFieldError: If a required field is empty.
            InvalidFieldError: If the due date is before the loan date, or a
                field has an unknown value.
            EquipmentNotFoundError: If the equipment does not exist.
            EquipmentUnavailableError: If the equipment is not available.
        """
        require(equipment_id=equipment_id, borrower_name=borrower_name, due_date=due_date)
        loan_date = datetime.date.today()
        due_date = as_date(due_date, "due_date")
        if due_date < loan_date:
            raise InvalidFieldError(
                f"'due_date' {due_date} is before the loan date {loan_date}.")
        try:
            borrower_type = BorrowerType.parse(borrower_type or BorrowerType.PARTICIPANT)
        except ValueError:
            raise InvalidFieldError(f"Unknown borrower type '{borrower_type}'.")
        accessories = cls._accessories(accessories)

        with StatusCoordinator.transaction() as tx:
            equipment = tx.lock(equipment_id)
            loan = Loan(
                id=new_id(),
                equipment_id=equipment.id,
                borrower_name=borrower_name,
                borrower_type=borrower_type,
                borrower_contact=borrower_contact,
                responsible_party_name=responsible_party_name or borrower_name,
                accessories=accessories,
                loan_date=loan_date,
                due_date=due_date,
                status=LoanStatus.LOANED,
                overdue_days=0,
                total_fine=Decimal(0),
                observations=observations,
            )
            StatusCoordinator.claim(equipment, ActiveKind.LOAN, loan.id)
            db.add(loan)
        logger.info(f"Loan {loan.id} opened for equipment {equipment_id}")
        return loan

    @classmethod
    def extend(cls, loan_id, due_date):
        """Moves an open loan's due date later."""
        require(due_date=due_date)
        due_date = as_date(due_date, "due_date")
        loan = cls.get(loan_id)

        with StatusCoordinator.transaction() as tx:
            tx.lock(loan.equipment_id)
            loan = (
                db.query(Loan)
                .filter(Loan.id == loan_id)
                .with_for_update()
                .populate_existing()
                .one()
            )
            if not loan.is_active:
                raise InvalidTransitionError(f"Loan '{loan.id}' was already returned.")
            if due_date <= loan.due_date:
                raise InvalidFieldError(
                    f"New due date {due_date} must be after the current one ({loan.due_date}).")
            previous, loan.due_date = loan.due_date, due_date
        logger.info(f"Loan {loan.id} extended from {previous} to {due_date}")
        return loan

    @classmethod
    def return_loan(cls, loan_id, return_date=None):
        """
        Closes a loan and frees its equipment.

        Returning a loan twice is a no-op that hands back the stored
        record. Fines are `overdue_days * fine_per_day`, where the rate
        comes from the settings store and is 0 when it cannot be read.
        """
        loan = cls.get(loan_id)
        if not loan.is_active:
            return loan
        return_date = as_date(return_date, "return_date") or datetime.date.today()
        rate = Settings.fine_per_day()

        with StatusCoordinator.transaction() as tx:
            equipment = tx.lock(loan.equipment_id)
            loan = (
                db.query(Loan)
                .filter(Loan.id == loan_id)
                .with_for_update()
                .populate_existing()
                .one()
            )
            if not loan.is_active:
                return loan
            days = overdue_days(loan.due_date, return_date)
            loan.return_date = return_date
            loan.overdue_days = days
            loan.total_fine = compute_fine(days, rate)
            loan.status = LoanStatus.RETURNED
            StatusCoordinator.vacate(equipment, ActiveKind.LOAN, loan.id, EquipmentStatus.AVAILABLE)
        logger.info(f"Loan {loan.id} returned, {loan.overdue_days} days late, fine {loan.total_fine}")
        return loan
