"""External market sources."""
