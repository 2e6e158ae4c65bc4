class IpTallyError(Exception):
    """Base class for every failure the command line reports"""


class ConfigError(IpTallyError):
    """Invalid option, config file, pattern or template; raised before any input is read"""


class TemplateError(ConfigError):
    """Malformed output template or one that does not fit the chosen mode"""


class SourceError(IpTallyError):
    """An input source could not be opened or read"""

    def __init__(self, source, reason):
        super().__init__(f"Could not read {source}: {reason}")
        self.source = source
        self.reason = reason


class ScanError(IpTallyError):
    """A line had no extractable address while running in pedantic mode"""

    def __init__(self, source, line_number, line):
        super().__init__(f"Could not extract IP from line {line_number} of {source}: {line!r}")
        self.source = source
        self.line_number = line_number
        self.line = line


class ReportError(IpTallyError):
    """An entry could not be resolved or rendered"""
