"""Secret retrieval and content-type dispatch."""
