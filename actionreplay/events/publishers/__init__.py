from .rich_terminal_publisher import RichTerminalReporter

__all__ = ["RichTerminalReporter"]
