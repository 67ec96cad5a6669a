"""Challenge supply: the prefetch queue, its remote suppliers and the local corpus draw."""
