"""Core logic for kaictl, independent of the CLI."""
