class BackendError(Exception):
    """Raised by a data backend when a read, write or credential check fails."""

    def __init__(self, reason: str, details: dict = None):
        self.reason = reason
        self.details = details or {}
        super().__init__(f"Backend error: {reason}")


class AuthProviderError(Exception):
    """Raised by the session provider when it rejects or cannot serve a request."""

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)
