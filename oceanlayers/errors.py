"""Exceptions raised by the ocean layers engine."""


class InvalidInputError(ValueError):
    """A top-level argument is malformed.

    Row-level problems never raise; this is reserved for inputs that are not a
    list of records at all, or for processing options that fail validation.
    """

    def __init__(self, argument: str, message: str):
        self.argument = argument
        super().__init__(f"Invalid {argument!r}: {message}")
