"""Error hierarchy for the user record store.

Repository errors propagate unmodified to the HTTP layer, which maps each
type to a status code.
"""


class UserStoreError(Exception):
    """Base exception for all record store failures."""

    http_status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DecodeError(UserStoreError):
    """Inbound payload could not be decoded into a User."""

    http_status = 400


class UserNotFoundError(UserStoreError):
    """No stored document matches the requested user id."""

    http_status = 404

    def __init__(self, user_id: str) -> None:
        super().__init__(f"{user_id} not exist")
        self.user_id = user_id


class StorageError(UserStoreError):
    """Connectivity, timeout or serialization failure talking to the store."""

    http_status = 500

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"Storage {operation} failed: {message}")
        self.operation = operation
