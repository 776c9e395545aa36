"""
Pandoro shared domain

Wire schemas, input validators, lifecycle rules and aggregation helpers
shared by the Pandoro backend contract and its clients.
"""

__version__ = "0.1.0"
