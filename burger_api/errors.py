"""Error kinds raised by the services and translated at the HTTP boundary."""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for failures reported to clients as ``{success: false}``."""

    status_code = 400
    message = "Bad request"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message is not None:
            self.message = message


class MissingField(ServiceError):
    status_code = 403
    message = "Email, password and name are required fields"


class EmailTaken(ServiceError):
    status_code = 403
    message = "User already exists"


class InvalidCredentials(ServiceError):
    status_code = 401
    message = "email or password are incorrect"


class Unauthorized(ServiceError):
    status_code = 401
    message = "You should be authorised"


class InvalidToken(ServiceError):
    status_code = 401
    message = "Token is invalid"


class NoIngredients(ServiceError):
    status_code = 400
    message = "Ingredient ids must be provided"


class UnknownIngredient(ServiceError):
    status_code = 400
    message = "One or more ids provided are incorrect"


class CatalogFailure(Exception):
    """The ingredient catalog could not resolve a lookup.

    Unlike :class:`ServiceError` this surfaces as an opaque 500 response.
    """


class MalformedIngredientId(CatalogFailure):
    def __init__(self, ingredient_id: object) -> None:
        super().__init__(f"Malformed ingredient id: {ingredient_id!r}")
        self.ingredient_id = ingredient_id


class CatalogUnavailable(CatalogFailure):
    pass


__all__ = [
    "CatalogFailure",
    "CatalogUnavailable",
    "EmailTaken",
    "InvalidCredentials",
    "InvalidToken",
    "MalformedIngredientId",
    "MissingField",
    "NoIngredients",
    "ServiceError",
    "Unauthorized",
    "UnknownIngredient",
]
