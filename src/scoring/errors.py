"""Exceptions raised by the signal engine."""


class SignalError(Exception):
    """Base error for signal calculations."""
    pass


class InvalidSettingsError(SignalError):
    """Classifier settings could not be interpreted."""
    pass


class DuplicateRecommendationError(SignalError):
    """An open outreach recommendation already exists for the domain."""

    def __init__(self, source_domain: str):
        self.source_domain = source_domain
        super().__init__(
            f"Outreach recommendation already exists for {source_domain}"
        )
