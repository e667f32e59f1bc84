"""Command-line entry point for the auth client."""
