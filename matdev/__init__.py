"""
MATDEV - WhatsApp 自动化机器人

自动表情回应: 情绪识别、延迟模式、状态去重
"""

__version__ = "2.0.0"
__author__ = "MATDEV Team"

from .bot import MatdevBot
from .config import Config

__all__ = ["MatdevBot", "Config"]
