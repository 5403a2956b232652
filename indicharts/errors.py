"""Exception types shared across Indicharts."""


class IndichartsError(Exception):
    """Base class for all Indicharts errors."""


class InvalidConfigurationError(IndichartsError, ValueError):
    """Raised when an alert rule or indicator configuration is malformed.

    All problems found are collected in ``problems`` so callers can report
    them together.
    """

    def __init__(self, problems: list[str] | str):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class BackendError(IndichartsError):
    """Raised when the sync backend cannot be reached or rejects a request."""
