"""
Repository layer exports.
"""

from db.repositories.execution_repository import ExecutionRepository
from db.repositories.script_repository import ScriptRepository

__all__ = [
    "ExecutionRepository",
    "ScriptRepository",
]
