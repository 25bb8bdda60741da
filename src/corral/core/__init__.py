"""Domain types, configuration and errors shared across the package."""
