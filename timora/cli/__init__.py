"""Command line interface for Timora."""
