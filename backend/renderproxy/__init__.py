"""
Render Proxy Backend
"""

__version__ = "1.0.0"
__license__ = "MIT"
