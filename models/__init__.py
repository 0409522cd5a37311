"""
models/ - Value Types
=====================
Plain dataclasses passed between the security, repository and service layers.
"""
