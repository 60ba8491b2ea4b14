"""
Start list route guards

Translates domain errors into HTTP errors so every route reports them the
same way:
- StartListNotFoundError -> 404
- InvalidStartListParameterError -> 400 (per-item errors included when present)
- StartListConflictError / ShooterHasResultsError -> 409
"""

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException

from startlist.services.start_list_errors import StartListError


def http_error_for(error: StartListError) -> HTTPException:
    """
    Build the HTTPException for a domain error.

    Args:
        error: Domain error raised by an editor/selector/store operation

    Returns:
        HTTPException with the error's status code; detail is the message, or
        {"message", "errors"} when the error carries per-item messages
    """
    if error.errors:
        detail = {"message": error.message, "errors": error.errors}
    else:
        detail = error.message
    return HTTPException(status_code=error.status_code, detail=detail)


@contextmanager
def start_list_errors_as_http() -> Iterator[None]:
    """Re-raise StartListError as the matching HTTPException."""
    try:
        yield
    except StartListError as e:
        raise http_error_for(e) from e
