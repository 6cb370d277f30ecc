# autosync/errors.py

"""
Exception types raised by autosync
"""


class ConfigurationError(ValueError):
    """Invalid or incomplete configuration, detected before anything starts"""


class InitializationError(RuntimeError):
    """A pipeline could not build its watch set"""


class SyncError(RuntimeError):
    """The external sync tool failed for one destination"""

    def __init__(self, message: str, returncode: int = None):
        super().__init__(message)
        self.returncode = returncode
