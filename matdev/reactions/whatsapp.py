"""
WhatsApp 平台表情回应实现
"""

from typing import Any, Dict

from loguru import logger


class WhatsAppReactor:
    """
    WhatsApp 表情回应器

    Sends reaction messages through the protocol client socket.
    """

    def __init__(self, sock):
        self.sock = sock

    async def react(self, jid: str, emoji: str, key: Dict[str, Any]) -> bool:
        """
        发送表情回应

        Args:
            jid: chat the reacted-to message lives in
            emoji: 表情字符
            key: raw key of the message being reacted to

        Returns:
            是否成功
        """
        try:
            await self.sock.send_message(jid, {"react": {"text": emoji, "key": key}})
            return True
        except Exception as e:
            logger.warning(f"Failed to send reaction: {e}")
            return False

    async def remove_reaction(self, jid: str, key: Dict[str, Any]) -> bool:
        """移除表情回应"""
        try:
            # 空字符串表示移除
            await self.sock.send_message(jid, {"react": {"text": "", "key": key}})
            return True
        except Exception as e:
            logger.warning(f"Failed to remove reaction: {e}")
            return False
