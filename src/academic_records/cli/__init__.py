"""Command-line interface for academic-records."""
