"""Command-line interface for the PRC client."""
