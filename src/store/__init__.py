"""Client state and dataset access layer.

This package persists small client settings and exposes the SDK client
that owns the merged in-memory dataset.
"""
