"""
security/ - Input Whitelisting
==============================
Field and condition validation against the live table schema. Nothing
reaches a statement without passing through this layer.
"""
