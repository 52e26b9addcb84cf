# ABOUTME: MetadataProvider protocol defining the contract for search sources.
# ABOUTME: Amazon, Open Library, and Readarr adapters all implement it; ProviderError reports failures.

from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from lectern.metadata.types import Candidate, MediaKind


class ProviderError(Exception):
    """Raised when one metadata provider fails or times out.

    Attributes:
        source: The provider tag (e.g. "amazon").
        cause: The underlying exception, or None for timeouts and cancellation.
    """

    def __init__(self, source: str, cause: BaseException | str | None = None) -> None:
        self.source = source
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"{source} provider failed{detail}")


@runtime_checkable
class MetadataProvider(Protocol):
    """Protocol for book metadata search sources.

    ``search`` returns a lazy, finite iterator of Candidates. Implementations
    raise ProviderError (possibly mid-iteration) rather than leaking
    transport exceptions.
    """

    @property
    def name(self) -> str: ...

    def supports(self, kind: MediaKind) -> bool: ...

    def search(self, query: str, kind: MediaKind) -> Iterator[Candidate]: ...
