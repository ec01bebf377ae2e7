from .handlers import ActionContext, CommandHandler
from .chain import ChainExecutor
from .dispatcher import CommandDispatcher

__all__ = ["ActionContext", "CommandHandler", "ChainExecutor", "CommandDispatcher"]
