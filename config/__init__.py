"""
Configuration package for the Event Console
"""

from .settings import Config, config

__all__ = ['Config', 'config']
