"""Shared service-layer building blocks: errors and ports."""
