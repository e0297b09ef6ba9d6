class RuntimeGridError(Exception):
    """Base class for client-side grid failures."""


class TransportError(RuntimeGridError):
    """The server could not be reached or answered with something unreadable."""


class ServerError(RuntimeGridError):
    def __init__(self, status_code: int, message: str = ""):
        text = f"server error {status_code}"
        super().__init__(f"{text}: {message}" if message else text)
        self.status_code = status_code
        self.message = message
