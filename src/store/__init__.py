"""Time-series storage layer.

This module defines the buffered point store contract and its
JSONL and InfluxDB implementations used by the import pipeline.
"""
