"""Custom exception hierarchy for prop-exchange."""


class ExchangeError(Exception):
    """Base exception for all prop-exchange errors."""


class ValidationError(ExchangeError):
    """Raised when an operation receives malformed input."""


class NotFoundError(ExchangeError):
    """Raised when a property, listing or offer does not exist."""


class InvalidStateError(ExchangeError):
    """Raised when an entity is in an invalid state for the operation."""


class DuplicateError(InvalidStateError):
    """Raised when a seller already has a live listing for a property."""


class InsufficientBalanceError(ExchangeError):
    """Raised when a holder does not own enough shares."""


class ShareArithmeticError(InsufficientBalanceError):
    """Raised when a transfer would take a share balance below zero."""


class InsufficientFundsError(ExchangeError):
    """Raised when a payer cannot cover a payment."""


class NotAuthorizedError(ExchangeError):
    """Raised when the caller is not the required principal."""


class NotOwnerError(NotAuthorizedError):
    """Raised when the sender of a transfer holds no shares of the property."""


class ExpiredError(ExchangeError):
    """Raised when settlement is attempted after the deal deadline."""


class PaymentMismatchError(ExchangeError):
    """Raised when the supplied payment differs from the agreed price."""


class ConfigurationError(ExchangeError):
    """Raised when configuration is invalid or missing."""


class SinkError(ExchangeError):
    """Raised when a sink operation fails."""


class InvariantError(ExchangeError):
    """Raised when ledger bookkeeping is found to be inconsistent."""
