"""Composting Belt — weekly batch lifecycle, mass decay and integrity certification.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
