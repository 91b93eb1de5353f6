"""API request/response models."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .positions import Position
from .schema_model import (
    DatabaseSchema,
    Engine,
    RelationType,
    SchemaIssue,
    DEFAULT_RELATION_TYPE,
)


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class GraphRequest(ApiModel):
    """Request for the graph projection endpoint."""
    data: Optional[DatabaseSchema] = Field(default=None, description="Schema to project")
    positions: Dict[str, Position] = Field(default_factory=dict, description="Last known node positions by table name")
    draggable: bool = Field(default=True, description="Whether nodes may be dragged")


class ParseRequest(ApiModel):
    """Raw JSON text from the editor's text view."""
    text: str = Field(..., description="Schema document as JSON text")


class ParseResponse(ApiModel):
    data: DatabaseSchema
    issues: List[SchemaIssue] = Field(default_factory=list, description="Advisory consistency findings")


class EndpointModel(ApiModel):
    """One end of a drawn connection."""
    table: str = Field(..., description="Table name")
    column: str = Field(..., description="Column name")


class ConnectionRequest(ApiModel):
    """Commit a connection drawn between two columns."""
    data: DatabaseSchema
    source: EndpointModel = Field(..., description="Column that receives the foreign key")
    target: EndpointModel = Field(..., description="Referenced column")
    relation_type: RelationType = Field(default=DEFAULT_RELATION_TYPE, description="Cardinality")


class EdgeActivateRequest(ApiModel):
    """Delete the foreign key behind a clicked edge."""
    data: DatabaseSchema
    edge_id: str = Field(..., description="Edge id as produced by the graph endpoint")


class RecolorRequest(ApiModel):
    data: DatabaseSchema
    table: str = Field(..., description="Table name")
    color: Optional[str] = Field(default=None, description="Hex color, or null for the default")


class SchemaResponse(ApiModel):
    """Schema after an edit."""
    data: DatabaseSchema
    changed: bool = Field(..., description="False when the edit was a no-op")


class ColorOption(ApiModel):
    name: str
    value: str


class VocabularyResponse(ApiModel):
    engine: Engine
    column_types: List[str]
    relation_types: List[RelationType]
    referential_actions: List[str]
    colors: List[ColorOption]
