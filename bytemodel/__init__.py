"""Binary object model, UDP exchange server, HTTP parsing helpers and Merkle trees."""

__version__ = "0.1.0"