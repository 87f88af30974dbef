"""Console reporting of run manifests."""
