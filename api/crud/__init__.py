"""
Generic CRUD controllers bound to one model and one collection.
"""

from .controller import Controller, build_router, create_controller

__all__ = ["Controller", "build_router", "create_controller"]
