"""Error taxonomy of the design generation pipeline."""


class StudioError(Exception):
    """Base class; ``message`` is safe to show to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StudioError):
    """Bad input. Raised before any network call is made."""


class QuotaExceededError(ValidationError):
    """The user has used up their free generations."""

    def __init__(self, generation_count: int, limit: int):
        super().__init__(
            f"You have used {generation_count} of {limit} free generations. "
            "Place an order to continue generating designs."
        )
        self.generation_count = generation_count
        self.limit = limit


class GenerationError(StudioError):
    """The generation service answered without a usable image."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(StudioError):
    """Upload to or download from owned storage failed."""


class FetchError(StorageError):
    """A remote host refused to hand over an image."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Could not fetch {url[:100]}: {reason}")
        self.url = url


class ConfigurationError(StudioError):
    """A garment/position combination has no mockup mapping."""


class LedgerError(StudioError):
    """Writing a generation record failed."""
