"""HTTP API for the data gateway."""
