"""cache/ -- Ephemeral key-value store (Redis) for counters, lock flags and profile cache entries."""
