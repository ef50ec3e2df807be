"""
Command line interface for MDB_GATEWAY.
"""
