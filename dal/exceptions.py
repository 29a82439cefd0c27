'''
Exceptions raised by the data access layer.
The service layer maps these onto HTTP status codes; see services/olog.py.
'''


class OlogException(Exception):
    pass

class TimeParseError(OlogException):
    """
    The search parameter could not be parsed as an absolute or relative time. A client error.
    """
    pass

class ReferenceValidationError(OlogException):
    """
    A log entry references a logbook or tag that does not exist. A client error; nothing is persisted.
    """
    pass

class NotFoundError(OlogException):
    pass

class ConflictError(OlogException):
    """
    A create collided with an existing key or an update lost an optimistic concurrency race.
    Callers may re-read and retry.
    """
    pass

class UnavailableError(OlogException):
    pass
