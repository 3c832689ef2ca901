"""Custom exception classes for the application.

Provides a hierarchy of exceptions for consistent error handling
across the application with appropriate HTTP status codes.

The hierarchy mirrors the failure kinds the engine reports:

- Validation: ``ValidationError``, ``InvalidAmountError`` (bad input,
  rejected before any read)
- Precondition: ``InsufficientFundsError``, ``InsufficientSharesError``,
  ``InsufficientHoldingsError``, ``AssetInactiveError``
- State: ``NotPendingError``
- Conflict: ``ConcurrencyError`` (retried by the coordinator first),
  ``ConflictError`` (a write would break an invariant)
- Lookup: ``NotFoundError``
"""

from decimal import Decimal


class AppException(Exception):
    """Base application exception.

    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, status_code: int = 500) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found exception.

    Raised when a requested resource does not exist.
    """

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(
            message=f"{resource} with id {identifier} not found",
            status_code=404,
        )
        self.resource = resource
        self.identifier = identifier


class ConflictError(AppException):
    """Resource conflict exception.

    Raised when a write would break a ledger or inventory invariant that the
    preceding checks should already have ruled out.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message=message, status_code=409)


class ValidationError(AppException):
    """Input validation failed exception.

    Raised when input data fails validation rules.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message=message, status_code=422)


class InsufficientFundsError(AppException):
    """Insufficient wallet balance exception.

    Raised when a buy or withdrawal cannot be completed because the
    wallet's available balance does not cover the amount.
    """

    def __init__(
        self,
        wallet_id: str,
        required: Decimal,
        available: Decimal,
    ) -> None:
        super().__init__(
            message=(
                f"Insufficient funds in wallet {wallet_id}: "
                f"required {required}, available {available}"
            ),
            status_code=400,
        )
        self.wallet_id = wallet_id
        self.required = required
        self.available = available


class InsufficientSharesError(AppException):
    """Asset inventory cannot cover the requested quantity."""

    def __init__(self, asset_id: str, requested: int, available: int) -> None:
        super().__init__(
            message=(
                f"Insufficient shares for asset {asset_id}: "
                f"requested {requested}, available {available}"
            ),
            status_code=400,
        )
        self.asset_id = asset_id
        self.requested = requested
        self.available = available


class InsufficientHoldingsError(AppException):
    """Portfolio item cannot cover the requested sell quantity.

    ``available`` already excludes shares reserved by pending sell orders.
    """

    def __init__(self, portfolio_item_id: str, requested: int, available: int) -> None:
        super().__init__(
            message=(
                f"Insufficient holdings in portfolio item {portfolio_item_id}: "
                f"requested {requested}, available for sale {available}"
            ),
            status_code=400,
        )
        self.portfolio_item_id = portfolio_item_id
        self.requested = requested
        self.available = available


class AssetInactiveError(AppException):
    """Asset is not open for trading."""

    def __init__(self, asset_id: str) -> None:
        super().__init__(
            message=f"Asset {asset_id} is not active",
            status_code=400,
        )
        self.asset_id = asset_id


class NotPendingError(AppException):
    """Operation requires a pending record but it was already resolved."""

    def __init__(self, resource: str, identifier: str, status: str) -> None:
        super().__init__(
            message=f"{resource} {identifier} is {status}, expected pending",
            status_code=409,
        )
        self.resource = resource
        self.identifier = identifier
        self.status = status


class ConcurrencyError(AppException):
    """Concurrent modification detected exception.

    Raised when a compare-and-swap write finds that a resource was modified
    by another transaction between read and update operations.
    The coordinator retries the whole operation before surfacing it.
    """

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(
            message=(
                f"{resource} {identifier} was modified by another transaction. "
                "Please retry."
            ),
            status_code=409,
        )
        self.resource = resource
        self.identifier = identifier


class InvalidAmountError(ValidationError):
    """Monetary amount is zero or negative."""

    def __init__(self, amount: Decimal) -> None:
        super().__init__(message=f"Amount must be greater than zero, got {amount}")
        self.amount = amount
