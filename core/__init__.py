"""Core aggregation engine.

- denoms: denom metadata and base-unit formatting
- cache: in-process TTL cache with single-flight misses
- upstream: chain/indexer query capabilities and HTTP adapters
- tokens: token registry and USD prices
- markets: market catalog and order book analytics
- portfolio: per-account portfolio aggregation
"""
