"""Bazelify command implementations."""
