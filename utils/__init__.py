"""
utils/ - Logging
================
"""
