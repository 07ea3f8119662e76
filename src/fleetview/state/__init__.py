"""State layer.

Owns the live fleet view: snapshot streams come in, immutable ordered
views go out.
"""
