
class EquiplendAPIError(Exception):
    kind = "internal"

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__ or self.kind)

    @property
    def message(self):
        return str(self)


class NotFoundError(EquiplendAPIError):
    kind = "not_found"

class ConflictError(EquiplendAPIError):
    kind = "conflict"

class BadRequestError(EquiplendAPIError):
    kind = "bad_request"

class InternalError(EquiplendAPIError):
    kind = "internal"

class EquipmentNotFoundError(NotFoundError):
    """Equipment not found."""

class CollaboratorNotFoundError(NotFoundError):
    """Collaborator not found."""

class LoanNotFoundError(NotFoundError):
    """Loan not found."""

class AssignmentNotFoundError(NotFoundError):
    """Assignment not found."""

class MaintenanceNotFoundError(NotFoundError):
    """Maintenance not found."""

class SettingNotFoundError(NotFoundError):
    """Setting not found."""

class EquipmentUnavailableError(ConflictError):
    """Equipment is not available."""

class EquipmentExistsError(ConflictError): pass

class EquipmentInUseError(ConflictError): pass

class InvalidTransitionError(ConflictError): pass

class CollaboratorInactiveError(ConflictError):
    """Collaborator is inactive."""

class MissingFieldError(BadRequestError): pass

class InvalidFieldError(BadRequestError): pass

class DatabaseError(InternalError): pass

class InvariantViolation(InternalError): pass

class LockTimeoutError(InternalError):
    """Equipment is locked by another operation, retry later."""
    kind = "lock_timeout"
    retryable = True
