"""Shared builders and fakes for relay tests."""
