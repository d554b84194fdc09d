# ABOUTME: Tome - federated book-metadata search for a self-hosted reading tracker.
# ABOUTME: Exposes the package version used in User-Agent headers and the CLI.

__version__ = "0.1.0"
