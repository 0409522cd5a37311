"""
services/ - Public API
======================
Database façade, typed group/table accessors and the fluent query builder.
"""
