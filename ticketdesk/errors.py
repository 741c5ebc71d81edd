from typing import Dict, List, Optional


class TicketDeskError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TicketDeskError):
    status_code = 400

    def __init__(self, message: str, errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.errors = errors or {}


class NotFoundError(TicketDeskError):
    status_code = 404


class ConflictError(TicketDeskError):
    status_code = 409


class UpstreamError(TicketDeskError):
    """The external suggestion call failed; callers only see a generic message."""

    status_code = 500
