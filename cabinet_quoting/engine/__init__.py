"""
Rule engine: pricing, processing rules, product dependencies, room
inheritance and quote totals.

Deterministic Decimal math. No I/O, no rounding, no shared mutable state.
Every QuoteEngine action takes a Quote and returns a new one.
"""
