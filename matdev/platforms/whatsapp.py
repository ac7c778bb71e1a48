"""
WhatsApp 平台适配器

Turns raw ``messages.upsert`` payloads from the protocol client into
InboundEvent objects and routes them through the plugin manager.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

STATUS_JID = "status@broadcast"

# Caption-bearing media types, checked in this order after plain text
_CAPTION_FIELDS = ("imageMessage", "videoMessage", "documentMessage")


@dataclass
class InboundEvent:
    """One decoded chat event"""
    chat_jid: str
    author: str
    event_id: str
    from_me: bool = False
    is_status: bool = False
    text: Optional[str] = None
    key: Dict[str, Any] = field(default_factory=dict)

    @property
    def dedup_key(self) -> Tuple[str, str]:
        return (self.author, self.event_id)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "InboundEvent":
        """Build an event from a protocol message dict

        Raises:
            ValueError: the message has no usable key
        """
        key = raw.get("key") or {}
        remote_jid = key.get("remoteJid")
        event_id = key.get("id")
        if not remote_jid or not event_id:
            raise ValueError("message key is missing remoteJid or id")

        return cls(
            chat_jid=remote_jid,
            author=key.get("participant") or remote_jid,
            event_id=event_id,
            from_me=bool(key.get("fromMe")),
            is_status=remote_jid == STATUS_JID,
            text=extract_text(raw.get("message")),
            key=key,
        )


def extract_text(message: Optional[Dict[str, Any]]) -> Optional[str]:
    """Pick the text body of a message

    Order: conversation, extended text, then image/video/document caption.
    """
    if not message:
        return None

    if message.get("conversation"):
        return message["conversation"]

    extended = message.get("extendedTextMessage") or {}
    if extended.get("text"):
        return extended["text"]

    for name in _CAPTION_FIELDS:
        media = message.get(name) or {}
        if media.get("caption"):
            return media["caption"]

    return None


class WhatsAppAdapter:
    """WhatsApp 平台适配器"""

    def __init__(self, sock, plugin_manager):
        """
        Args:
            sock: protocol client socket
            plugin_manager: PluginManager receiving decoded events
        """
        self.sock = sock
        self.plugin_manager = plugin_manager

    async def on_messages_upsert(self, payload: Dict[str, Any]) -> List[InboundEvent]:
        """Handle one ``messages.upsert`` payload

        Returns:
            The events that were dispatched
        """
        events = []
        for raw in payload.get("messages") or []:
            try:
                event = InboundEvent.from_raw(raw)
            except (ValueError, AttributeError) as e:
                logger.debug(f"Skipping malformed message: {e}")
                continue

            await self.plugin_manager.dispatch_event(event)
            events.append(event)

        return events
