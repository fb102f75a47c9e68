"""Table fetch layer.

This module retrieves requested tables from the remote table service or
from flat-file snapshots and turns them into typed tables.
"""
