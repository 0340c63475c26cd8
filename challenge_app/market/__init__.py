"""
Market data module.

Static instrument catalog, quote and position models, and the synthetic
bid/ask feed.
"""
