"""
Reconciliation engine: formats, schemas, catalog, scanning and mutations.
"""

from plugdeck.core.manager import OperationResult, PluginManager
from plugdeck.core.mutations import MutationEngine

__all__ = ["MutationEngine", "OperationResult", "PluginManager"]
