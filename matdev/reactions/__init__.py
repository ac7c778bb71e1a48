"""
自动表情回应系统

- 五类情绪分析 (love / sad / angry / laugh / neutral)
- 延迟模式
- 状态去重
- WhatsApp 适配
"""

from .sentiment import GLYPHS, Mood, SentimentReactionEngine, SentimentScore
from .ledger import DeliveryLedger
from .dispatcher import ReactionDispatcher, ScheduledReaction, schedule_delay, split_emojis
from .whatsapp import WhatsAppReactor

__all__ = [
    "GLYPHS",
    "Mood",
    "SentimentReactionEngine",
    "SentimentScore",
    "DeliveryLedger",
    "ReactionDispatcher",
    "ScheduledReaction",
    "schedule_delay",
    "split_emojis",
    "WhatsAppReactor",
]
