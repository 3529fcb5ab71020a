class SpotFlakeError(Exception):
    """Base class for every error raised by spotflake."""

    pass


class ConstructionError(SpotFlakeError, ValueError):
    """Raised when a node or layout is created with invalid parameters."""

    pass


class IdentifierRangeError(SpotFlakeError, ValueError):
    """Raised when an identifier to encode is negative or wider than 63 bits."""

    pass


class DecodeError(SpotFlakeError, ValueError):
    """Raised when a string cannot be decoded into an identifier."""

    def __init__(self, message: str, text: str = ""):
        super().__init__(message)
        self.text = text


class EmptyInputError(DecodeError):
    """Raised when the string to decode is empty."""

    pass


class InvalidCharacterError(DecodeError):
    """Raised when the string contains a symbol outside the target alphabet."""

    def __init__(self, message: str, text: str = "", character: str = "", position: int = -1):
        super().__init__(message, text)
        self.character = character
        self.position = position


class ValueOutOfRangeError(DecodeError):
    """Raised when the decoded value does not fit in 63 bits."""

    pass


class TimestampOverflowError(SpotFlakeError):
    """Raised when the elapsed time since the epoch does not fit the timestamp field."""

    pass


class ClockMovedBackwardsError(SpotFlakeError):
    """Raised when the clock reports a time earlier than the last generated ID."""

    def __init__(self, message: str, drift_ms: int = 0):
        super().__init__(message)
        self.drift_ms = drift_ms


class ClockUnavailableError(SpotFlakeError):
    """Raised when no system clock reading can be obtained."""

    pass
