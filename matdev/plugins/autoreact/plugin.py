"""
自动表情回应插件

功能:
- 根据消息情绪自动回应
- 状态 (status) 自动回应与去重
- 延迟模式切换
"""

from typing import List, Optional

from loguru import logger

from ...config import ConfigStore, DelayMode
from ...reactions import ReactionDispatcher, split_emojis
from ...reactions.dispatcher import DELAY_WINDOWS_MS, STATUS
from ..base import CommandSpec, Plugin

ON_WORDS = ("on", "enable")
OFF_WORDS = ("off", "disable")


class AutoReactPlugin(Plugin):
    """自动表情回应插件"""

    version = "2.0.0"

    def __init__(self, store: ConfigStore, transport, dispatcher: Optional[ReactionDispatcher] = None):
        """
        Args:
            store: persisted configuration
            transport: reaction transport (e.g. WhatsAppReactor)
            dispatcher: prebuilt dispatcher, mainly for tests
        """
        super().__init__()
        self.store = store
        self.dispatcher = dispatcher or ReactionDispatcher(store.reactions, transport)

    @property
    def name(self) -> str:
        return "autoreact"

    @property
    def description(self) -> str:
        return "Auto react to messages and status updates"

    @property
    def settings(self):
        return self.store.reactions

    async def _setup(self):
        """初始化插件"""
        self.dispatcher.start()
        logger.info(
            f"✅ Auto React plugin loaded "
            f"(messages={'on' if self.settings.message_enabled else 'off'}, "
            f"status={'on' if self.settings.status_enabled else 'off'})"
        )

    async def _cleanup(self):
        """清理资源"""
        self.dispatcher.stop()
        await self.dispatcher.join()
        logger.info("Auto React plugin shutdown")

    async def on_message(self, event) -> None:
        self.dispatcher.handle_event(event)

    def get_commands(self) -> List[CommandSpec]:
        prefix = self.store.config.prefix
        return [
            CommandSpec(
                name="autoreact",
                description="Toggle automatic message reactions on/off or show status",
                usage=f"{prefix}autoreact [on/off/delay/nodelay]",
                category="automation",
                owner_only=True,
            ),
            CommandSpec(
                name="sautoreact",
                description="Toggle automatic status reactions on/off or show status",
                usage=f"{prefix}sautoreact [on/off/delay/nodelay]",
                category="automation",
                owner_only=True,
            ),
        ]

    async def handle_command(self, command: str, args: List[str]) -> str:
        if command == "autoreact":
            return self._toggle("message", args)
        if command == "sautoreact":
            return self._toggle("status", args)
        return await super().handle_command(command, args)

    def _toggle(self, kind: str, args: List[str]) -> str:
        """Apply one admin toggle; kind is "message" or "status" """
        action = args[0].lower() if args else ""
        label = kind.upper()

        if action in ON_WORDS:
            reply = f"✅ *{label} AUTO REACTIONS ENABLED*"
            setattr(self.settings, f"{kind}_enabled", True)
        elif action in OFF_WORDS:
            reply = f"❌ *{label} AUTO REACTIONS DISABLED*"
            setattr(self.settings, f"{kind}_enabled", False)
        elif action == "delay":
            setattr(self.settings, f"{kind}_delay_mode", DelayMode.RANDOMIZED)
            reply = (
                f"⏰ *{label} REACTION DELAY ENABLED*\n\n"
                f"🕐 Bot will now wait {self._window_text(kind)} before reacting."
            )
        elif action == "nodelay":
            setattr(self.settings, f"{kind}_delay_mode", DelayMode.IMMEDIATE)
            reply = (
                f"⚡ *{label} REACTION DELAY DISABLED*\n\n"
                f"💨 Bot will now react instantly."
            )
        else:
            return self._status_text(kind)

        logger.info(f"Auto react {kind} setting changed: {action}")
        if not self.store.save():
            reply += "\n\n⚠️ Setting applied but could not be saved"
        return reply

    @staticmethod
    def _window_text(kind: str) -> str:
        low, high = DELAY_WINDOWS_MS[kind]
        if kind == STATUS:
            return f"{low // 1000}s-{high // 60000}min"
        return f"{low / 1000:g}-{high / 1000:g} seconds"

    def _status_text(self, kind: str) -> str:
        prefix = self.store.config.prefix
        enabled = getattr(self.settings, f"{kind}_enabled")
        mode = getattr(self.settings, f"{kind}_delay_mode")
        timing = f"⏰ Delayed ({self._window_text(kind)})" if mode is DelayMode.RANDOMIZED else "⚡ Instant"
        command = "sautoreact" if kind == STATUS else "autoreact"

        lines = [
            f"*{kind.upper()} AUTO REACT* {'✅ Enabled' if enabled else '❌ Disabled'}",
            "",
            f"*Timing:* {timing}",
        ]
        if kind == STATUS:
            pool = split_emojis(self.settings.status_emojis)
            lines.append(f"*Reactions:* {''.join(pool) if pool else 'by sentiment'}")
            lines.append(f"*Cache:* {len(self.dispatcher.ledger)} statuses")
        lines += ["", "*Commands:*", f"{prefix}{command} on/off/delay/nodelay"]
        return "\n".join(lines)

    def health_check(self):
        status = super().health_check()
        status["stats"] = self.dispatcher.get_stats()
        return status
