"""Command-line entry point for tutor evaluations."""
