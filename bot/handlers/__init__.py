"""
Модуль обработчиков команд бота.
"""

from .commands import COMMANDS, handle_register, handle_unregister

__all__ = ['COMMANDS', 'handle_register', 'handle_unregister']
