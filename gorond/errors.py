"""Exceptions raised by gorond.

File level errors carry the offending path and only abort the file they
belong to. Run level errors stop the whole run before any file is touched.
"""


class GorondError(Exception):
    """Base class for all gorond errors."""


class FileError(GorondError):
    """An error tied to a single source file."""

    def __init__(self, path, message):
        self.path = str(path)
        self.message = message
        super().__init__(f"{self.path}: {message}")


class ParseFailure(FileError):
    """The file is not a well-formed Go source header."""

    def __init__(self, path, message, offset=None):
        self.offset = offset
        super().__init__(path, message)


class ReadFailure(FileError):
    pass


class WriteFailure(FileError):
    pass


class RenameFailure(FileError):
    pass


class ModuleResolutionFailure(GorondError):
    """The module path or the standard library set could not be determined."""


class PatternError(GorondError):
    """A package pattern did not match anything on disk."""


class ConfigError(GorondError):
    """The gorond configuration file could not be read or is invalid."""
