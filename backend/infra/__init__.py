"""In-process infrastructure: cache, rate limiting and health probes."""
