"""hosttree: ordered hierarchical asset store."""
