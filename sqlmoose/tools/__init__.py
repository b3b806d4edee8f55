"""Command-line tools for sqlmoose."""
