"""API layer for the Demo Host."""
