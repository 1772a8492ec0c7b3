"""Shared utilities for the relay."""
