# datagrid/exceptions.py
# Structured errors raised inside the storage and schema layers


class AppError(Exception):
    """Base error with a machine-readable code and optional details."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: dict = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class StorageError(AppError):
    """A backend read, write or delete failed."""
    def __init__(self, message: str = "Storage operation failed", details: dict = None):
        super().__init__(
            message=message,
            error_code="STORAGE_ERROR",
            details=details
        )


class StorageUnavailableError(StorageError):
    """The document store could not be initialised."""
    def __init__(self, message: str = "Document store unavailable", details: dict = None):
        super().__init__(message=message, details=details)
        self.error_code = "STORAGE_UNAVAILABLE"


class ColumnDefinitionError(AppError):
    """A column mapping cannot be turned into a column definition."""
    def __init__(self, message: str = "Invalid column definition", details: dict = None):
        super().__init__(
            message=message,
            error_code="INVALID_COLUMN",
            details=details
        )
