"""Infrastructure adapters: configuration, database, cache, blob store, events."""
