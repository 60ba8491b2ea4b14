"""
Start list domain errors.

Every editor/selector operation raises the most specific subclass. The route
layer maps ``status_code`` onto an HTTP response and uses the message as detail.
"""

from typing import List, Optional


class StartListError(Exception):
    """Base exception for start list operations"""

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class StartListNotFoundError(StartListError):
    """Referenced competition, start list, team or shooter does not exist"""

    status_code = 404


class InvalidStartListParameterError(StartListError):
    """Malformed input (non-positive ids, empty required fields, bad times)"""

    status_code = 400


class StartListConflictError(StartListError):
    """Operation would break a start list invariant"""

    status_code = 409


class ShooterHasResultsError(StartListError):
    """Shooter already has recorded results and cannot be removed"""

    status_code = 409
