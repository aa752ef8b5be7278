"""
Exception types raised by the Qimen chart engine.

Collaborator failures (Swiss Ephemeris errors, impossible lunar dates) are
not wrapped; they propagate to the caller as raised.
"""


class QimenError(Exception):
    """Base class for every error the engine raises on its own."""


class InputValidationError(QimenError, ValueError):
    """A chart request field, or a configured default, is out of range or
    of the wrong type."""


class TableLookupError(QimenError, LookupError):
    """A fixed lookup table has no entry for the requested key.

    The tables are exhaustive for well-formed input, so reaching this means
    a caller passed a value that never should have existed (an unknown solar
    term name, a stem/branch pair outside the sexagenary cycle, region 10).
    """
