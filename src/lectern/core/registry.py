# ABOUTME: Builds providers, the aggregator, and the matcher from a LecternConfig.
# ABOUTME: Owns the HTTP clients it creates so callers can close them in one place.

import logging
from dataclasses import dataclass, field

from lectern.config import LecternConfig, ReadarrInstanceSettings
from lectern.core.aggregator import Aggregator, AggregatorConfig
from lectern.core.matcher import Matcher
from lectern.metadata.amazon import AmazonPublicProvider
from lectern.metadata.http import LecternHttpClient
from lectern.metadata.openlibrary import OpenLibraryProvider
from lectern.metadata.provider import MetadataProvider
from lectern.metadata.readarr import ReadarrClient, ReadarrInstance, ReadarrProvider
from lectern.metadata.types import MediaKind

logger = logging.getLogger(__name__)


@dataclass
class ProviderRegistry:
    """Providers built from configuration plus the HTTP clients backing them."""

    providers: list[MetadataProvider] = field(default_factory=list)
    readarr: ReadarrProvider | None = None
    http_clients: list[LecternHttpClient] = field(default_factory=list)

    def close(self) -> None:
        for client in self.http_clients:
            client.close()

    def __enter__(self) -> "ProviderRegistry":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _http_client(config: LecternConfig, timeout: float, *, verify: bool = True) -> LecternHttpClient:
    return LecternHttpClient(
        timeout=timeout,
        min_request_interval=config.http.min_request_interval,
        max_retries=config.http.max_retries,
        verify=verify,
    )


def _readarr_instance(settings: ReadarrInstanceSettings) -> ReadarrInstance:
    return ReadarrInstance(
        base_url=settings.base_url,
        api_key=settings.api_key,
        lookup_endpoint=settings.lookup_endpoint,
        verify_ssl=settings.verify_ssl,
    )


def build_readarr(config: LecternConfig, registry: ProviderRegistry) -> ReadarrProvider | None:
    """Create a Readarr provider covering every configured instance, or None."""
    settings = config.providers.readarr
    clients: dict[MediaKind, ReadarrClient] = {}
    for kind, instance_settings in (
        (MediaKind.EBOOK, config.readarr.ebooks),
        (MediaKind.AUDIOBOOK, config.readarr.audiobooks),
    ):
        instance = _readarr_instance(instance_settings)
        if not instance.is_configured:
            logger.debug("No Readarr instance configured for %s", kind.value)
            continue
        http = _http_client(config, settings.timeout, verify=instance.verify_ssl)
        registry.http_clients.append(http)
        clients[kind] = ReadarrClient(instance, http, cache_ttl=settings.cache_ttl)
    if not clients:
        return None
    return ReadarrProvider(clients)


def build_registry(config: LecternConfig) -> ProviderRegistry:
    """Instantiate every enabled provider described by ``config``."""
    registry = ProviderRegistry()
    providers = config.providers

    if providers.amazon.enabled:
        http = _http_client(config, providers.amazon.timeout)
        registry.http_clients.append(http)
        registry.providers.append(
            AmazonPublicProvider(
                http,
                marketplace=providers.amazon.marketplace,
                limit=providers.amazon.limit,
                detail_concurrency=providers.amazon.detail_concurrency,
            )
        )

    readarr = build_readarr(config, registry)
    registry.readarr = readarr
    if readarr is not None and providers.readarr.enabled:
        registry.providers.append(readarr)

    if providers.openlibrary.enabled:
        http = _http_client(config, providers.openlibrary.timeout)
        registry.http_clients.append(http)
        registry.providers.append(OpenLibraryProvider(http, limit=providers.openlibrary.limit))

    return registry


def aggregator_config(config: LecternConfig) -> AggregatorConfig:
    providers = config.providers
    return AggregatorConfig(
        enabled={
            "amazon": providers.amazon.enabled,
            "readarr": providers.readarr.enabled,
            "openlibrary": providers.openlibrary.enabled,
        },
        provider_timeouts={
            "amazon": providers.amazon.timeout,
            "readarr": providers.readarr.timeout,
            "openlibrary": providers.openlibrary.timeout,
        },
        timeout=config.search.timeout,
        title_threshold=config.search.title_threshold,
        author_threshold=config.search.author_threshold,
    )


def create_aggregator(config: LecternConfig, registry: ProviderRegistry) -> Aggregator:
    return Aggregator(registry.providers, aggregator_config(config))


def create_matcher(config: LecternConfig, registry: ProviderRegistry) -> Matcher | None:
    """Matcher over the Readarr catalog, or None when no instance is configured."""
    if registry.readarr is None:
        return None
    return Matcher(
        registry.readarr,
        title_threshold=config.matching.title_threshold,
        author_threshold=config.matching.author_threshold,
    )
