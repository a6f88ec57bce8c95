"""
deployment/ - HTTP surface
"""

from .api import create_fastapi_app

__all__ = ["create_fastapi_app"]
