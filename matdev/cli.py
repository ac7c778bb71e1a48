#!/usr/bin/env python3
"""
MATDEV CLI

命令行工具
"""

import sys
from pathlib import Path

import click
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from matdev import __version__
from matdev.config import Config, DelayMode
from matdev.reactions import Mood, SentimentReactionEngine, split_emojis
from matdev.reactions.dispatcher import DELAY_WINDOWS_MS

console = Console()


def setup_logging(config: Config, verbose: bool = False):
    """配置日志"""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else config.logging.level.upper())
    if config.logging.to_file:
        logger.add(
            config.logging.file_path,
            level=config.logging.level.upper(),
            rotation=config.logging.rotation,
            encoding="utf-8",
        )


@click.group()
@click.version_option(version=__version__, prog_name="matdev")
@click.option("--config", "-c", help="配置文件路径")
@click.option("--verbose", "-v", is_flag=True, help="详细输出")
@click.pass_context
def cli(ctx, config, verbose):
    """MATDEV - WhatsApp 自动表情回应"""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config

    # 先用默认级别, 读到配置后再按配置调整
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")
    loaded = Config.load(config)
    setup_logging(loaded, verbose)
    ctx.obj["config"] = loaded


@cli.command()
@click.pass_context
def init(ctx):
    """初始化配置"""
    config_path = Path(ctx.obj.get("config_path") or "config/config.yaml")

    if config_path.exists():
        console.print(f"[yellow]配置文件已存在: {config_path}[/yellow]")
        if not click.confirm("是否覆盖?"):
            return

    Config().save(str(config_path))

    console.print(f"[green]✓ 配置文件已创建: {config_path}[/green]")


@cli.command()
@click.argument("text", nargs=-1, required=True)
def classify(text):
    """分析一段文字会得到什么表情"""
    message = " ".join(text)
    engine = SentimentReactionEngine()
    score = engine.score(message)
    glyph = engine.classify(message)

    table = Table(title="Sentiment score")
    table.add_column("Bucket")
    table.add_column("Score", justify="right")
    for mood in (Mood.LOVE, Mood.SAD, Mood.ANGRY, Mood.LAUGH):
        table.add_row(mood.value, str(score.get(mood)))

    console.print(table)
    console.print(f"Reaction: {glyph or '(none)'}")


@cli.command()
@click.pass_context
def status(ctx):
    """查看自动回应设置"""
    settings = ctx.obj["config"].reactions

    def timing(mode: DelayMode, kind: str) -> str:
        if mode is DelayMode.IMMEDIATE:
            return "instant"
        low, high = DELAY_WINDOWS_MS[kind]
        return f"{low / 1000:g}s - {high / 1000:g}s"

    pool = split_emojis(settings.status_emojis)
    console.print(Panel.fit(
        f"Messages: {'on' if settings.message_enabled else 'off'} "
        f"({timing(settings.message_delay_mode, 'message')})\n"
        f"Status:   {'on' if settings.status_enabled else 'off'} "
        f"({timing(settings.status_delay_mode, 'status')})\n"
        f"Status reactions: {''.join(pool) if pool else 'by sentiment'}\n"
        f"Ledger sweep: every {settings.ledger_sweep_hours:g}h",
        title="Auto React",
        border_style="green"
    ))


def main():
    """主入口"""
    cli()


if __name__ == "__main__":
    main()
