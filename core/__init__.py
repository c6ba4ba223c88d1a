"""
Core shared modules.

- services.py: ServiceClient, the JSON-over-HTTP pipe used by domain clients
"""

__version__ = "0.1.0"
