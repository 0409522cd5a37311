"""
db/ - Database Layer
====================
Configuration sources, the per-database connection registry and the table
schema cache. This layer is the lowest in the architecture and has no
dependencies on other layers.
"""
