"""Schema Canvas - keeps a database schema, its JSON text and its diagram in sync."""

__version__ = "0.1.0"

from .editor import EditorSession
from .graph import build_graph
from .schema_model import DatabaseSchema

__all__ = ["DatabaseSchema", "EditorSession", "build_graph"]
