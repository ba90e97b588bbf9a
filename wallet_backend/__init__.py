"""
BACKEND PACKAGE

Flask HTTP surface cho wallet_core (register / otp / verify / authenticate / accounts).
"""

from .app import create_app, setup_logger

__all__ = ['create_app', 'setup_logger']
