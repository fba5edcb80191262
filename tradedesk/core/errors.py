from typing import Dict, List, Optional


class ValidationFailed(Exception):
    """Client-side rule violation, raised before any request is sent."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class WithdrawalInvalid(ValidationFailed):
    def __init__(self, errors: Dict[str, List[str]]):
        first = next(iter(errors.values()))[0] if errors else "Invalid withdrawal"
        super().__init__(first)
        self.errors = errors


class BackendError(Exception):
    """Non-2xx or unsuccessful envelope. `message` is shown to the user as is."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(BackendError):
    def __init__(self, message: str, signed_out: bool = False):
        super().__init__(message, status_code=401)
        self.signed_out = signed_out
