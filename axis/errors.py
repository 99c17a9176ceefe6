class AxisError(Exception):
    pass


class BackendError(AxisError):
    """A backend operation failed. Transient: callers keep last-known-good state."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class BackendUnavailable(BackendError):
    pass
