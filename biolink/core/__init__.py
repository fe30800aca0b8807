"""Core infrastructure: settings, logging, buffer client and security helpers."""
