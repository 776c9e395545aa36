"""
Pandoro client

Synchronous request façade over the Pandoro REST backend, its configuration
and the ``pandoro`` command line.
"""

__version__ = "0.1.0"
