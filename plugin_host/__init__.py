"""
Plugin host: a FastAPI application that discovers plugin modules and drives
their startup and teardown.
"""

__version__ = "1.0.0"
