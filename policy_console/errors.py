"""Error taxonomy shared by transport, forms and screens."""


class ConsoleError(Exception):
    """Base for every failure an operator action can surface."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransportError(ConsoleError):
    """The management API could not be reached or did not answer in time."""


class RemoteError(ConsoleError):
    """The management API answered with a non-2xx status or ``ok: false``."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class FormValidationError(ConsoleError):
    """A draft failed local validation; nothing was sent."""


class NotConnectedError(ConsoleError):
    """Mutations are disabled while the session is not connected."""


class ConsoleBusyError(ConsoleError):
    """Another mutating round trip is still in flight."""
