"""Exception hierarchy.

Only configuration and document problems are raised. Request failures,
failed assertions and channel delivery problems travel as result objects.
"""


class PingwatchError(Exception):
    """Base class for all pingwatch errors."""


class ScriptValidationError(PingwatchError):
    """A script document is malformed.

    The message names the offending field so it can be shown to the
    script author as-is.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ChannelConfigError(PingwatchError):
    """A notification channel has an unknown type or invalid config."""
