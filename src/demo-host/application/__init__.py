"""Application layer for the Demo Host."""
