"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.execution import Execution
from db.models.script import Script
from db.models.script_connected_file import ScriptConnectedFile
from db.models.script_external_api import ScriptExternalApi
from db.models.script_file import ScriptFile
from db.models.script_function import ScriptFunction
from db.models.script_trigger import ScriptTrigger

__all__ = [
    "Execution",
    "Script",
    "ScriptConnectedFile",
    "ScriptExternalApi",
    "ScriptFile",
    "ScriptFunction",
    "ScriptTrigger",
]
