from __future__ import annotations

import traceback


class Error(Exception):
    """Generic dissect.jumplist error"""

    def __init__(self, message: str | None = None, cause: Exception | None = None, extra: list | None = None):
        if extra:
            exceptions = "\n\n".join(["".join(traceback.format_exception_only(type(e), e)) for e in extra])
            message = f"{message}\n\nAdditionally, the following exceptions occurred:\n\n{exceptions}"

        super().__init__(message)
        self.__cause__ = cause
        self.__extra__ = extra


# Raised for conditions on the primary input, the tools stop before processing anything
class FatalError(Error):
    """An error occurred that cannot be resolved."""


class ConfigurationError(FatalError):
    """The run was configured with missing or invalid input."""


class DecodeError(Error):
    """A Jump List or shortcut structure could not be decoded."""


class InvalidSignatureError(DecodeError):
    """The file is too short to hold a signature."""


class UnsupportedVersionError(DecodeError):
    """The structure has a version we can't parse."""


class InvalidFooterError(DecodeError):
    """The CustomDestination footer magic is missing."""


class ExportError(Error):
    """An export sink could not be written."""
