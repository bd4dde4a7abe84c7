"""Command-line tooling for tfsig."""
