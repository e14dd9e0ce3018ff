from fastapi import HTTPException, status

from src.config import settings
from src.constants import ErrorCode


class CustomException(HTTPException):
    """Base class for custom exceptions."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        code: str = "error",
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code


class AuthenticationError(CustomException):
    """Raised when authentication fails."""

    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            code=ErrorCode.AUTHENTICATION_ERROR,
        )


class NotFoundError(CustomException):
    """Raised when a resource is not found."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            code=ErrorCode.NOT_FOUND,
        )


class AccountNotFoundError(NotFoundError):
    """Raised when Horizon has no record of a Stellar account."""

    def __init__(self, address: str):
        super().__init__(detail=f"Stellar account not found: {address}")
        self.address = address


class LedgerError(CustomException):
    """Raised when a Horizon call fails or times out."""

    def __init__(self, detail: str = "Ledger operation failed"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            code=ErrorCode.LEDGER_ERROR,
        )


class InvalidTransactionError(CustomException):
    """Raised when a delegation references an unknown transaction."""

    def __init__(self, detail: str = "Invalid or unknown transaction"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            code=ErrorCode.INVALID_TRANSACTION,
        )


class NothingToClaimError(CustomException):
    """Raised when a claim finds no pending rewards."""

    def __init__(self, detail: str = "No pending rewards to claim"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            code=ErrorCode.NOTHING_TO_CLAIM,
        )


class ForbiddenError(CustomException):
    """Raised when the caller may not act on a resource."""

    def __init__(self, detail: str = "Operation not allowed"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            code=ErrorCode.FORBIDDEN,
        )


class PoolUnavailableError(CustomException):
    """Raised when a pool is inactive or past its distribution period."""

    def __init__(self, detail: str = "Pool is not accepting delegations"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            code=ErrorCode.POOL_UNAVAILABLE,
        )


class InsufficientBalanceError(CustomException):
    """Raised when an account holds less of a token than required."""

    def __init__(self, detail: str = "Insufficient balance"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            code=ErrorCode.INSUFFICIENT_BALANCE,
        )


class SnapshotInProgressError(CustomException):
    """Raised when another snapshot run holds the run lock."""

    def __init__(self, detail: str = "A snapshot run is already in progress"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            code=ErrorCode.SNAPSHOT_IN_PROGRESS,
        )


class SnapshotError(CustomException):
    """Raised when a snapshot run fails."""

    def __init__(self, detail: str = "Snapshot run failed"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            code=ErrorCode.SNAPSHOT_ERROR,
        )


def internal_error(exc: Exception) -> HTTPException:
    """Wrap an unexpected error, hiding its message outside debug mode."""
    detail = (
        f"An unexpected error occurred: {exc}"
        if settings.DEBUG
        else "Internal server error"
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )
