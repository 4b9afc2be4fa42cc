"""Command line interface for the data gateway."""
