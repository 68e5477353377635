"""Typed failures surfaced by the prediction pipeline."""


class PredictionError(Exception):
    """Base exception for a failed prediction cycle."""
    pass


class LLMTransportError(PredictionError):
    """The chat-completions request itself failed (network error or non-200)."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class LLMStructuralError(PredictionError):
    """The model replied, but the reply violates the output contract."""
    pass


class MarketNotFoundError(PredictionError):
    """No Polymarket market exists for the requested window slug."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"No Polymarket market found for slug: {slug}")
