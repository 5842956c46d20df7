# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain error taxonomy shared by all services.

Services raise subclasses of these errors for expected outcomes. The API
layer maps each category to an HTTP status and a stable error code; the
services themselves know nothing about HTTP.
"""


class DomainError(Exception):
    """Base exception for expected domain failures.

    Attributes:
        message: Human-readable error description.
        code: Stable machine-readable error code.
    """

    default_code = "domain_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        """Initialize the domain error.

        Args:
            message: Human-readable error description.
            code: Stable error code. Defaults to the class default.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class NotFoundError(DomainError):
    """An entity referenced by identifier does not exist."""

    default_code = "not_found"


class ValidationError(DomainError):
    """Input or state violates a business rule."""

    default_code = "validation_failed"


class AuthenticationError(DomainError):
    """Credentials are missing, wrong or belong to an inactive account."""

    default_code = "authentication_failed"


class AuthorizationError(DomainError):
    """The principal lacks the role or relationship the operation needs."""

    default_code = "forbidden"


class ConflictError(DomainError):
    """The operation collides with the current state of the entity."""

    default_code = "conflict"
