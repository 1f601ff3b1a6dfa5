"""Settlement engine: atomic procedure with legacy fallback, and auto-settlement."""
