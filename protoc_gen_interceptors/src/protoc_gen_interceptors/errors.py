# --- Error kinds surfaced to the plugin entry point ------------------------


class InterceptorsError(Exception):
    """Base class for every failure the plugin reports."""


class MetadataDecodeError(InterceptorsError):
    """The CodeGeneratorRequest read from stdin could not be decoded."""


class SourceParseError(InterceptorsError):
    """A gateway file could not be read or does not parse as Go."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class EmitError(InterceptorsError):
    """Formatting or writing a rewritten gateway file failed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason
