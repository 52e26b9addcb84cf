# ABOUTME: Metadata package: the Candidate type, provider adapters, and the identity rule.
# ABOUTME: Exports the pieces the aggregator and matcher are built from.

from lectern.metadata.dedupe import deduplicate, is_duplicate, merge_candidates
from lectern.metadata.provider import MetadataProvider, ProviderError
from lectern.metadata.types import Candidate, MediaKind

__all__ = [
    "Candidate",
    "MediaKind",
    "MetadataProvider",
    "ProviderError",
    "deduplicate",
    "is_duplicate",
    "merge_candidates",
]
