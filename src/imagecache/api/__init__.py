"""HTTP layer for imagecache: the public proxy endpoint and health check."""
