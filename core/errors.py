"""
Service-level errors that routes translate into HTTP status codes
"""


class ServiceError(Exception):
    """Base class for errors with an HTTP status"""
    status_code = 500


class BadRequestError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class JobConflictError(ServiceError):
    status_code = 409
