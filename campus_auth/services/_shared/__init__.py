"""Shared building blocks for application services."""
