from __future__ import annotations


class CsvCleanError(Exception):
    """Base class for csvclean errors."""


class ConfigurationError(CsvCleanError):
    """Raised for bad flags or arguments, before any file is touched."""


class UsageError(ConfigurationError):
    """Raised when the command line itself is malformed; help text applies."""


class FileOpenError(CsvCleanError):
    def __init__(self, role: str, path: str, cause: BaseException):
        self.role = role
        self.path = path
        self.cause = cause
        super().__init__(f"error opening {role} file {path!r}: {cause}")


class ProcessingError(CsvCleanError):
    """Base class for failures while records are being rewritten."""


class ParseError(ProcessingError):
    def __init__(self, path: str, line: int, cause: object):
        self.path = path
        self.line = line
        self.cause = cause
        super().__init__(f"error reading from input file {path!r} at line {line}: {cause}")


class WriteError(ProcessingError):
    def __init__(self, path: str, record: int, cause: BaseException):
        self.path = path
        self.record = record
        self.cause = cause
        super().__init__(f"error writing record {record} to output file {path!r}: {cause}")


class FinalizeError(ProcessingError):
    def __init__(self, path: str, temp_path: str, cause: BaseException, truncated: bool = False):
        self.path = path
        self.temp_path = temp_path
        self.cause = cause
        self.truncated = truncated
        super().__init__(
            f"error overwriting input file {path!r} with data from temp file {temp_path!r}: {cause}"
        )
