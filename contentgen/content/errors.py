"""Error taxonomy for the generation pipeline.

Only :class:`ContentValidationError` and :class:`NotFoundError` cross the
pipeline boundary. :class:`ProviderError` is captured per item and recorded on
the item; :class:`ExportError` is logged and discarded.
"""


class ContentError(Exception):
    """Base class for pipeline errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ContentValidationError(ContentError):
    """Malformed or missing input, raised before any state is mutated."""

    status_code = 400


class NotFoundError(ContentError):
    """A referenced batch or item does not exist."""

    status_code = 404


class ProviderError(ContentError):
    """A provider call failed or returned unusable output."""

    status_code = 502

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class ExportError(ContentError):
    """Best-effort document export failed."""

    status_code = 502
