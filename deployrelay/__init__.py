"""Relay from deployment-ready webhooks to GitHub check runs and workflows."""

__version__ = "0.1.0"
