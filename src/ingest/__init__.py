"""nmon ingestion pipeline.

This package locates and fetches nmon files, parses their records
and writes tagged points to the time-series store.
"""
