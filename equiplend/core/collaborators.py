import logging
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from equiplend.core.db import session as db
from equiplend.core.models import Collaborator, CollaboratorType
from equiplend.core.utils import require
from equiplend.core.exceptions import (
    CollaboratorNotFoundError,
    InvalidFieldError,
    DatabaseError,
)

logger = logging.getLogger(__name__)


def _type(value):
    try:
        return CollaboratorType.parse(value)
    except ValueError:
        raise InvalidFieldError(f"Unknown collaborator type '{value}'.")


class CollaboratorRegistry:

    EDITABLE = {"full_name", "position", "program", "contact", "type", "is_active"}

    @classmethod
    def get(cls, collaborator_id):
        if collaborator := Collaborator.exists(collaborator_id):
            return collaborator
        raise CollaboratorNotFoundError(f"Collaborator '{collaborator_id}' not found.")

    @classmethod
    def _save(cls, collaborator):
        try:
            db.add(collaborator)
            db.commit()
            return collaborator
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to save collaborator: {e}.")

    @classmethod
    def create(cls, full_name, position=None, program=None, contact=None, type=None):
        require(full_name=full_name)
        collaborator = cls._save(Collaborator(
            full_name=full_name,
            position=position,
            program=program,
            contact=contact,
            type=_type(type or CollaboratorType.COLLABORATOR),
            is_active=True,
        ))
        logger.info(f"Collaborator {collaborator.id} registered")
        return collaborator

    @classmethod
    def list(cls, search=None, type=None, include_inactive=False, offset=None, limit=None):
        query = db.query(Collaborator)
        if not include_inactive:
            query = query.filter(Collaborator.is_active.is_(True))
        if type:
            query = query.filter(Collaborator.type == _type(type))
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                Collaborator.full_name.ilike(term),
                Collaborator.position.ilike(term),
                Collaborator.program.ilike(term),
            ))
        query = query.order_by(Collaborator.full_name)
        return Collaborator.get_many(query, offset=offset, limit=limit)

    @classmethod
    def update(cls, collaborator_id, **fields):
        """Edits a collaborator; `is_active=False` retires it from future
        assignments while keeping its history."""
        if forbidden := set(fields) - cls.EDITABLE:
            raise InvalidFieldError(f"Cannot edit: {', '.join(sorted(forbidden))}.")
        for field in ("full_name", "type"):
            if field in fields and not fields[field]:
                raise InvalidFieldError(f"'{field}' cannot be empty.")
        if "is_active" in fields and not isinstance(fields["is_active"], bool):
            raise InvalidFieldError("'is_active' must be true or false.")
        if "type" in fields:
            fields["type"] = _type(fields["type"])
        collaborator = cls.get(collaborator_id)
        for field, value in fields.items():
            setattr(collaborator, field, value)
        collaborator = cls._save(collaborator)
        if fields.get("is_active") is False:
            logger.info(f"Collaborator {collaborator.id} deactivated")
        return collaborator
