"""
Custom exceptions for the bulk import engine with caller-facing error messages.
"""

class ImportException(Exception):
    """Base exception for import-related errors."""
    status_code = 500
    
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

class MalformedPayloadError(ImportException):
    """Raised when the import envelope cannot be read as {"games": [...]}."""
    status_code = 400
    
    def __init__(self, reason: str):
        super().__init__(
            f"Malformed import payload: {reason}",
            reason
        )

class IdentifierResolutionError(ImportException):
    """Raised when an inserted row's identifier cannot be recovered."""
    def __init__(self, table: str, natural_key: dict):
        super().__init__(
            f"Could not resolve id for {table} row {natural_key}",
            f"Failed to resolve inserted {table} identifier"
        )
        self.table = table
        self.natural_key = natural_key

class ImportStorageError(ImportException):
    """Raised when any storage step of the load fails; the import is rolled back."""
    def __init__(self, operation: str, details: str = None):
        super().__init__(
            f"Storage error during {operation}: {details}",
            details or f"Storage error during {operation}"
        )
        self.operation = operation
