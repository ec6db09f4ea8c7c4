# This file is part of the chat agent for logging and console management.
# Date: 2026-10-19
# Version: 1.0.0

import logging
from typing import Any, Dict
from rich.logging import RichHandler
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

# Define a custom logging level for success messages
SUCCESS_LEVEL_NUM = 25

logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")

def success_log(self, message, *args, **kwargs):
    if self.isEnabledFor(SUCCESS_LEVEL_NUM):
        self._log(SUCCESS_LEVEL_NUM, message, args, **kwargs)

# Register the custom success method to the logging.Logger class
if not hasattr(logging.Logger, 'success'):
    setattr(logging.Logger, 'success', success_log)

class ConsoleManager:
    """
    A singleton class that manages the console output for the chat agent.
    It uses Rich for logging and console output. Failures are logged with the
    kind of error in brackets so that the cause survives the generic response
    returned to callers.
    """
    def __init__(self, name: str = "chat-agent"):
        custom_theme = Theme({
            "logging.level.success": "bold green"
        })
        self._console = Console(theme=custom_theme)
        self._logger = self._setup_logger(name)

    def _setup_logger(self, name: str) -> logging.Logger:
        logger = logging.getLogger(name)
        if logger.hasHandlers():
            # If logger is already configured, don't add handlers again
            return logger

        logger.setLevel(logging.INFO)
        handler = RichHandler(
            console=self._console,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            keywords=["INFO", "SUCCESS", "WARNING", "ERROR", "DEBUG", "CRITICAL"],
            show_path=False
        )
        handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
        return logger

    @staticmethod
    def _tag(message: str, kind: str = None) -> str:
        return f"[{kind}] {message}" if kind else message

    def info(self, message: str):
        self._logger.info(message)

    def success(self, message: str):
        self._logger.success(message)

    def warning(self, message: str, kind: str = None):
        self._logger.warning(self._tag(message, kind))

    def error(self, message: str, kind: str = None):
        self._logger.error(self._tag(message, kind))

    def exception(self, message: str, kind: str = None):
        # The 'exc_info=True' is what makes .exception() special
        self._logger.exception(self._tag(message, kind))

    def rule(self, title: str, style: str = "cyan"):
        self._console.rule(f"[bold {style}]{title}[/bold {style}]", style=style)

    def display_data_as_table(self, data: Dict[str, Any], title: str):
        table = Table(show_header=True, header_style="bold magenta", box=None, show_edge=False)
        table.add_column("Setting", style="cyan", no_wrap=True, width=24)
        table.add_column("Value", style="white")

        for key, value in data.items():
            if isinstance(value, list):
                table.add_row(key, ", ".join(map(str, value or [])))
            else:
                table.add_row(key, str(value))

        panel = Panel(table, title=f"[bold green]✓ {title}[/bold green]", border_style="green")
        self._console.print(panel)

# Create a singleton instance for global use
console = ConsoleManager()
