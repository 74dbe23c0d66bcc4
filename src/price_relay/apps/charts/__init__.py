"""Chart queries: time-bucket aggregation over cached and stored ticks."""
