"""
MATDEV 插件系统

导出插件基类与内置插件
"""

from typing import Any, Dict

from loguru import logger

from .base import CommandSpec, Plugin, PluginManager
from .autoreact import AutoReactPlugin

__all__ = [
    # 基类
    "Plugin",
    "PluginManager",
    "CommandSpec",
    # 内置插件
    "AutoReactPlugin",
    # 工具函数
    "create_plugin_manager",
]


def create_plugin_manager(store, transport) -> PluginManager:
    """创建并注册内置插件

    Args:
        store: ConfigStore shared by the plugins
        transport: reaction transport

    Returns:
        配置好的 PluginManager 实例
    """
    manager = PluginManager()
    for plugin in (AutoReactPlugin(store, transport),):
        try:
            manager.register(plugin)
        except ValueError as e:
            logger.error(f"Failed to register plugin {plugin.name}: {e}")
    return manager


async def initialize_plugins(manager: PluginManager, options: Dict[str, Dict[str, Any]] = None) -> Dict[str, Any]:
    """初始化所有插件

    Returns:
        初始化结果统计
    """
    await manager.initialize_all(options)
    results = {name: manager.get(name).initialized for name in manager.list_plugins()}
    return {
        "total": len(results),
        "initialized": sum(1 for ok in results.values() if ok),
        "plugins": results,
    }
