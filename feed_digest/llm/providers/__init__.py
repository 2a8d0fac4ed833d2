"""Registered language model providers."""
