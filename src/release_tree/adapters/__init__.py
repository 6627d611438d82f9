"""Adapters around the classification engine."""
