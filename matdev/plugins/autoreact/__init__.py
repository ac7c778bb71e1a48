"""
AutoReact Plugin

情绪识别自动表情回应
"""

from .plugin import AutoReactPlugin

__all__ = ["AutoReactPlugin"]
