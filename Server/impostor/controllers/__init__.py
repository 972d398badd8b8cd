"""
Controllers Package

HTTP blueprints.
"""

from .lobby_controller import lobby_bp

__all__ = ['lobby_bp']
