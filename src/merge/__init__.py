"""Dataset merge and soft-deletion tracking package."""
