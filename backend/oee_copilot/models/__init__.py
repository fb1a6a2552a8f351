from .base import Base
from .equipment import Equipment, EquipmentStatusLog
from .chat import ChatSession, ChatMessage

__all__ = [
    "Base",
    "Equipment",
    "EquipmentStatusLog",
    "ChatSession",
    "ChatMessage",
]
