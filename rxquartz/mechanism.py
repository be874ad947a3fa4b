"""Core error types for :mod:`rxquartz`."""


class QuartzException(Exception):
    """Base class for all rxquartz exceptions.

    Wraps a lower-level exception together with the component that raised
    it, so errors travelling through the Rx error channel stay traceable.
    """

    def __init__(self, exception: Exception, source: str = "Unknown", note: str = ""):
        super().__init__(f"<{source}> {note}: {exception}")
        self.exception = exception
        self.source = source
        self.note = note

    def __str__(self):
        return f"<{self.source}> {self.note}: {self.exception}"
