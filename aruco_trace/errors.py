class ConfigurationError(ValueError):
    """Calibration or config values have the wrong shape or are missing."""


class DeviceError(RuntimeError):
    """The camera device could not be opened."""


class FormatError(ValueError):
    """A points source contains a malformed record."""

    def __init__(self, message: str, line_no: int | None = None):
        super().__init__(message)
        self.line_no = line_no
