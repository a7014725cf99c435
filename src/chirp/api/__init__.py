"""HTTP API for the Chirp application."""
