"""
utils/ - Shared helpers
=======================
Logging setup and calendar arithmetic.
"""
