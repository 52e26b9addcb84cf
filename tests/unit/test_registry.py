# ABOUTME: Unit tests for building providers, the aggregator, and the matcher from config.
# ABOUTME: Checks which providers are created and how settings flow into them.

from lectern.config import parse_config
from lectern.core.registry import (
    aggregator_config,
    build_registry,
    create_aggregator,
    create_matcher,
)
from lectern.metadata.types import MediaKind

READARR_CONFIG = """
readarr:
  ebooks:
    base_url: http://readarr.local:8787
    api_key: abc123
"""


class TestBuildRegistry:
    def test_defaults_without_readarr(self) -> None:
        with build_registry(parse_config("")) as registry:
            assert [p.name for p in registry.providers] == ["amazon", "openlibrary"]
            assert registry.readarr is None

    def test_readarr_added_when_configured(self) -> None:
        with build_registry(parse_config(READARR_CONFIG)) as registry:
            assert [p.name for p in registry.providers] == ["amazon", "readarr", "openlibrary"]
            assert registry.readarr.supports(MediaKind.EBOOK)
            assert not registry.readarr.supports(MediaKind.AUDIOBOOK)

    def test_disabled_providers_skipped(self) -> None:
        config = parse_config("providers:\n  amazon: {enabled: false}\n  openlibrary: {enabled: false}\n")
        with build_registry(config) as registry:
            assert registry.providers == []

    def test_readarr_search_disabled_still_available_for_matching(self) -> None:
        config = parse_config(READARR_CONFIG + "providers:\n  readarr: {enabled: false}\n")
        with build_registry(config) as registry:
            assert "readarr" not in [p.name for p in registry.providers]
            assert create_matcher(config, registry) is not None

    def test_one_http_client_per_source(self) -> None:
        with build_registry(parse_config(READARR_CONFIG)) as registry:
            assert len(registry.http_clients) == 3


class TestFactories:
    def test_aggregator_config_from_settings(self) -> None:
        config = parse_config("search: {timeout: 6}\nproviders:\n  amazon: {enabled: false, timeout: 4}\n")
        agg = aggregator_config(config)
        assert agg.timeout == 6.0
        assert not agg.is_enabled("amazon")
        assert agg.timeout_for("amazon") == 4.0
        assert agg.timeout_for("openlibrary") == 6.0

    def test_create_aggregator(self) -> None:
        config = parse_config("")
        with build_registry(config) as registry:
            aggregator = create_aggregator(config, registry)
            assert [p.name for p in aggregator.providers] == ["amazon", "openlibrary"]

    def test_no_matcher_without_readarr(self) -> None:
        config = parse_config("")
        with build_registry(config) as registry:
            assert create_matcher(config, registry) is None
