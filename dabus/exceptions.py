"""
Error taxonomy for the DaBus API.

Every error carries the HTTP status it maps to and a message that is safe to
return to clients. Services raise these; the handlers registered in
``dabus.main`` render them in the standard ``{success, error}`` envelope.
"""


class DaBusError(Exception):
    """Base class for all errors surfaced by the API"""
    status_code = 500
    retryable = False

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class ValidationError(DaBusError):
    """Malformed or missing input"""
    status_code = 400


class InvalidTransitionError(ValidationError):
    """Booking status change not allowed from the current state"""


class AlreadyCancelledError(DaBusError):
    status_code = 400

    def __init__(self, message: str = "Booking already cancelled"):
        super().__init__(message)


class AuthError(DaBusError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class ForbiddenError(DaBusError):
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFoundError(DaBusError):
    status_code = 404


class InventoryError(DaBusError):
    """A seat mutation would leave available_seats outside [0, capacity]"""
    status_code = 409


class CapacityError(InventoryError):
    """Trip has no seat left to book"""


class TripInUseError(DaBusError):
    status_code = 409


class StorageError(DaBusError):
    """Backing store failure; the message never carries driver detail"""
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


class StorageTimeout(StorageError):
    retryable = True

    def __init__(self, message: str = "Storage operation timed out"):
        super().__init__(message)
