"""
Shared utilities for the entity cache.

This package aggregates the ambient building blocks used by the cache core:

- config: Cache configuration via pydantic-settings
- logging: Structured logging through structlog
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses

Cache logic should not live here. Do not import from entity_cache.engine,
entity_cache.store or entity_cache.log into shared/.
"""
