# -*- coding: utf-8 -*-
"""
Ops errors
Exception taxonomy shared by repositories, services and controllers
"""


class OpsError(Exception):
    """Base class for every error raised by the coordination layer."""

    error = 'Internal server error'

    def __init__(self, message=None, **details):
        super().__init__(message or self.error)
        self.message = message or self.error
        self.details = details


class NotFound(OpsError):
    error = 'Not found'


class AuthenticationRequired(OpsError):
    error = 'User authentication required'


class ValidationError(OpsError):
    error = 'Validation error'


class PersistenceError(OpsError):
    """A backing-store call failed (network, constraint violation, timeout)."""

    error = 'Database operation failed'


class PartialDataError(OpsError):
    """A secondary lookup (user or client name) failed; callers degrade to placeholders."""

    error = 'Partial data'
