"""
MATDEV 插件基类

插件提供两样东西:
1. 命令 (CommandSpec), 由 PluginManager 按名字路由
2. on_message 钩子, 每条入站消息都会经过
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from loguru import logger


@dataclass
class CommandSpec:
    """插件提供的命令定义"""
    name: str
    description: str
    usage: str = ""
    category: str = "misc"
    owner_only: bool = False


class Plugin(ABC):
    """MATDEV 插件基类

    子类至少实现 name / description / _setup
    """

    version = "1.0.0"

    def __init__(self):
        self._ready = False
        self.options: Dict[str, Any] = {}

    @property
    @abstractmethod
    def name(self) -> str:
        """插件名称 (唯一标识)"""

    @property
    @abstractmethod
    def description(self) -> str:
        """插件描述"""

    @property
    def initialized(self) -> bool:
        return self._ready

    async def initialize(self, options: Optional[Dict[str, Any]] = None):
        """初始化插件

        Args:
            options: 该插件的额外选项
        """
        self.options = dict(options or {})
        await self._setup()
        self._ready = True

    @abstractmethod
    async def _setup(self):
        """子类的启动逻辑"""

    async def shutdown(self):
        await self._cleanup()
        self._ready = False

    async def _cleanup(self):
        """子类的清理逻辑 (可选)"""

    def get_commands(self) -> List[CommandSpec]:
        return []

    async def handle_command(self, command: str, args: List[str]) -> str:
        """处理命令

        Args:
            command: 命令名称 (不带前缀, 已转小写)
            args: 命令参数

        Returns:
            回复文本
        """
        return f"❌ {self.name} has no command '{command}'"

    async def on_message(self, event) -> None:
        """入站消息钩子 (可选)"""

    def health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy" if self._ready else "not_initialized",
            "plugin": self.name,
            "version": self.version,
        }


class PluginManager:
    """插件管理器: 注册, 命令路由, 消息广播"""

    def __init__(self):
        self._plugins: Dict[str, Plugin] = {}
        self._routes: Dict[str, Plugin] = {}  # command -> plugin
        self._specs: Dict[str, CommandSpec] = {}

    def register(self, plugin: Plugin):
        """注册插件, 插件名或命令名冲突时抛 ValueError"""
        if plugin.name in self._plugins:
            raise ValueError(f"Plugin '{plugin.name}' already registered")

        specs = {spec.name.lower(): spec for spec in plugin.get_commands()}
        clashes = [name for name in specs if name in self._routes]
        if clashes:
            owner = self._routes[clashes[0]].name
            raise ValueError(f"Command '{clashes[0]}' already registered by '{owner}'")

        self._plugins[plugin.name] = plugin
        for name, spec in specs.items():
            self._routes[name] = plugin
            self._specs[name] = spec
        logger.debug(f"Registered plugin {plugin.name} ({', '.join(specs) or 'no commands'})")

    def unregister(self, plugin_name: str):
        plugin = self._plugins.pop(plugin_name, None)
        if plugin is None:
            return
        for name in [n for n, p in self._routes.items() if p is plugin]:
            del self._routes[name]
            del self._specs[name]

    def get(self, name: str) -> Optional[Plugin]:
        return self._plugins.get(name)

    def list_plugins(self) -> List[str]:
        return list(self._plugins)

    def get_command(self, command: str) -> Optional[CommandSpec]:
        return self._specs.get(command.lower())

    def get_all_commands(self) -> List[CommandSpec]:
        return list(self._specs.values())

    async def dispatch_command(self, command: str, args: List[str]) -> str:
        """把命令交给对应插件

        Returns:
            回复文本; 未知命令或插件异常时返回错误提示
        """
        name = command.lower()
        plugin = self._routes.get(name)
        if plugin is None:
            return f"❌ Unknown command: {command}"

        try:
            return await plugin.handle_command(name, args)
        except Exception as e:
            logger.error(f"Command '{name}' failed in plugin '{plugin.name}': {e}")
            return f"❌ Error running {name}: {e}"

    async def dispatch_event(self, event):
        """把消息交给每个已初始化的插件, 插件异常只记录不抛出"""
        for plugin in self._plugins.values():
            if not plugin.initialized:
                continue
            try:
                await plugin.on_message(event)
            except Exception as e:
                logger.error(f"Plugin '{plugin.name}' failed on message: {e}")

    async def initialize_all(self, options: Optional[Dict[str, Dict[str, Any]]] = None):
        """初始化所有插件

        Args:
            options: {plugin_name: options}
        """
        options = options or {}
        for name, plugin in self._plugins.items():
            try:
                await plugin.initialize(options.get(name))
            except Exception as e:
                logger.error(f"Failed to initialize plugin '{name}': {e}")

    async def shutdown_all(self):
        for name, plugin in self._plugins.items():
            try:
                await plugin.shutdown()
            except Exception as e:
                logger.error(f"Error shutting down plugin '{name}': {e}")
