"""
Custom runtime bootstrap for the Lambda Runtime API.
"""

__version__ = "0.1.0"
