"""
grantvault Exception Hierarchy

All exceptions inherit from GrantVaultError for easy catching.
Messages for lifecycle failures are stable strings so callers can
tell the failure modes apart without inspecting types.
"""


class GrantVaultError(Exception):
    """Base exception for all grantvault errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(GrantVaultError):
    """Raised when an argument is malformed or out of range"""
    pass


class InvalidAddressError(ValidationError):
    """Raised when a null or malformed identity is supplied for a participant"""
    pass


class AuthorizationError(GrantVaultError):
    """Raised when authorization fails"""
    pass


class UnauthorizedError(AuthorizationError):
    """Raised when the caller lacks the identity an operation requires"""
    pass


class GrantStateError(GrantVaultError):
    """Raised when a grant is not in a state that allows the operation"""
    pass


class GrantNotFoundError(GrantStateError):
    """Raised when a grant was never created or has already been finalized"""
    pass


class AlreadyUnlockedError(GrantStateError):
    """Raised when the funder tries to remove a grant at or after unlock"""
    pass


class NotYetUnlockedError(GrantStateError):
    """Raised when the recipient tries to claim a grant before unlock"""
    pass


class LedgerError(GrantVaultError):
    """Raised when token ledger operations fail"""
    pass


class InsufficientFundsError(LedgerError):
    """Raised when a balance cannot cover a transfer"""
    pass


class InsufficientAllowanceError(LedgerError):
    """Raised when a spender's allowance cannot cover a transfer"""
    pass


class JournalError(GrantVaultError):
    """Raised when the grant journal cannot be written or read"""
    pass


class ConfigError(GrantVaultError):
    """Raised when vault configuration is missing or invalid"""
    pass
