"""Table naming and location layer.

This module classifies logical table names and maps them onto physical
tenant-qualified names and snapshot file locations.
"""
