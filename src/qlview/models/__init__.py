"""Pydantic v2 models for server, player and fused view records.

Re-exports all model classes for convenient import::

    from qlview.models import ServerRecord, MergedServerView, ...
"""

from .player import EnhancedPlayerList, EnhancedPlayerRecord, MergedPlayerRecord
from .server import PlayerRecord, ServerDetail, ServerRecord
from .view import MergedServerView

__all__ = [
    "PlayerRecord",
    "ServerRecord",
    "ServerDetail",
    "EnhancedPlayerRecord",
    "EnhancedPlayerList",
    "MergedPlayerRecord",
    "MergedServerView",
]
