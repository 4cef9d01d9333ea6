"""Command line interface for convmem."""
