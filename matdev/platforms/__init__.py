"""
Chat platform adapters
"""

from .whatsapp import STATUS_JID, InboundEvent, WhatsAppAdapter, extract_text

__all__ = ["STATUS_JID", "InboundEvent", "WhatsAppAdapter", "extract_text"]
