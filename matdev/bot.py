"""
MATDEV 主类

把协议客户端、配置、插件和自动回应串起来
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from .config import Config, ConfigStore
from .platforms.whatsapp import InboundEvent, WhatsAppAdapter
from .plugins import PluginManager, create_plugin_manager, initialize_plugins
from .reactions import WhatsAppReactor


class MatdevBot:
    """MATDEV 主类

    Example:
        >>> bot = MatdevBot(sock, config_path="config/config.yaml")
        >>> await bot.start()
        >>> await bot.on_messages_upsert({"messages": [...]})
    """

    def __init__(self, sock, config_path: Optional[str] = None, config: Optional[Config] = None):
        """
        Args:
            sock: protocol client socket with ``async send_message(jid, content)``
            config_path: 配置文件路径
            config: already loaded configuration
        """
        self.sock = sock
        self.config = config or Config.load(config_path)
        self.store = ConfigStore(self.config, config_path or "config/config.yaml")
        self.reactor = WhatsAppReactor(sock)
        self.plugins: PluginManager = create_plugin_manager(self.store, self.reactor)
        self.adapter = WhatsAppAdapter(sock, self.plugins)
        self._running = False

        logger.info(f"{self.config.name} v{self.config.version} initialized")

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> Dict[str, Any]:
        """启动插件"""
        if self._running:
            logger.warning("Bot already running")
            return {}

        result = await initialize_plugins(self.plugins)
        self._running = True
        logger.info(f"Plugins ready: {result['initialized']}/{result['total']}")
        return result

    async def stop(self):
        """关闭插件 (已排队的回应会先发完)"""
        if not self._running:
            return
        await self.plugins.shutdown_all()
        self._running = False
        logger.info("Bot stopped")

    async def on_messages_upsert(self, payload: Dict[str, Any]) -> List[InboundEvent]:
        """协议客户端的 messages.upsert 回调"""
        return await self.adapter.on_messages_upsert(payload)

    def is_owner(self, sender: Optional[str], from_me: bool = False) -> bool:
        if from_me:
            return True
        owner = self.config.owner_number
        if not owner or not sender:
            return False
        # jid 形如 2348012345678@s.whatsapp.net
        return sender.split("@")[0].split(":")[0] == owner.lstrip("+")

    async def run_command(self, text: str, sender: Optional[str] = None, from_me: bool = False) -> Optional[str]:
        """Run a prefixed command line such as ``.autoreact on``

        Returns:
            Reply text, or None when text is not a command
        """
        prefix = self.config.prefix
        if not text or not text.startswith(prefix):
            return None

        parts = text[len(prefix):].split()
        if not parts:
            return None

        spec = self.plugins.get_command(parts[0])
        if spec and spec.owner_only and not self.is_owner(sender, from_me):
            logger.debug(f"Rejected owner-only command {spec.name} from {sender}")
            return "❌ This command is for the bot owner only"

        return await self.plugins.dispatch_command(parts[0], parts[1:])
