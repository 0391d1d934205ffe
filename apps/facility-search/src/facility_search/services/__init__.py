"""Search pipeline stages."""
