"""HTTP surface over the core dashboard payloads."""
