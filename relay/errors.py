class RelayError(Exception):
    """Base exception for relay-assistant errors."""

    pass


class StorageError(RelayError):
    """Reading or writing a conversation log or fact record failed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Storage failure on {path}: {reason}")


class BackendTransportError(RelayError):
    """The model backend could not be reached or answered with an HTTP error."""

    pass


class BackendProtocolError(RelayError):
    """The model backend answered, but without a usable message payload."""

    pass


class SessionStateError(RelayError):
    """A session operation was invoked outside the state it is valid in."""

    def __init__(self, user_id: str, operation: str, state: str):
        self.user_id = user_id
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} session for {user_id} in state {state}")


class RetryExhaustedError(RelayError):
    """Every attempt for one request failed."""

    def __init__(self, user_id: str, attempts: int, last_error: Exception | None = None):
        self.user_id = user_id
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed to get AI response after {attempts} attempts")
