"""Ingestion helpers.

Turns raw store documents into typed records before they reach the
state layer.
"""
