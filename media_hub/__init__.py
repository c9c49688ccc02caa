"""
Media Hub
Encoding, publishing and live streaming on AWS media services
"""

__version__ = "1.0.0"

from .core.runtime.ui import VERSION

__all__ = ["__version__", "VERSION"]
