"""FastAPI application exposing the schema/graph engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from . import edges
from .api_models import (
    ColorOption,
    ConnectionRequest,
    EdgeActivateRequest,
    GraphRequest,
    ParseRequest,
    ParseResponse,
    RecolorRequest,
    SchemaResponse,
    VocabularyResponse,
)
from .auth import require_user_id
from .config import configure_logging, get_settings
from .connections import ConnectionResolver
from .errors import ParseError
from .graph import Endpoint, GraphProjection, Role, build_graph
from .schema_model import (
    DatabaseSchema,
    Engine,
    ReferentialAction,
    RelationType,
    TABLE_COLORS,
    column_types,
    find_issues,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    configure_logging()
    settings = get_settings()
    if not settings.jwt_secret:
        logger.warning("JWT_SECRET not set, authenticated endpoints will reject every request")
    logger.info("Schema service at %s", settings.api_url)
    yield


app = FastAPI(
    title="Schema Canvas API",
    description="Graph projection and gesture mapping for visual database schema editing",
    version="0.1.0",
    lifespan=lifespan,
)

frontend_origin = get_settings().frontend_origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=[frontend_origin, "http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.get("/api/vocabulary/{engine}", response_model=VocabularyResponse)
async def vocabulary(engine: Engine):
    """Column types and presentation options for one engine."""
    return VocabularyResponse(
        engine=engine,
        column_types=list(column_types(engine)),
        relation_types=list(RelationType),
        referential_actions=[action.value for action in ReferentialAction],
        colors=[ColorOption(name=name, value=value) for name, value in TABLE_COLORS],
    )


@app.post("/api/graph", response_model=GraphProjection)
async def project_graph(request: GraphRequest):
    """Nodes and edges for a schema, honoring known positions."""
    return build_graph(request.data, request.positions, draggable=request.draggable)


@app.post("/api/schemas/parse", response_model=ParseResponse, response_model_exclude_none=True)
async def parse_schema(request: ParseRequest):
    """Validate text from the JSON view."""
    try:
        schema = DatabaseSchema.from_json_text(request.text)
    except ParseError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ParseResponse(data=schema, issues=find_issues(schema))


@app.post("/api/connections", response_model=SchemaResponse, response_model_exclude_none=True)
async def commit_connection(request: ConnectionRequest, user_id: int = Depends(require_user_id)):
    """Turn a drawn connection into a foreign key (deduplicated)."""
    resolver = ConnectionResolver()
    resolver.begin(
        Endpoint(request.source.table, request.source.column, Role.SOURCE),
        Endpoint(request.target.table, request.target.column, Role.TARGET),
    )
    resolver.select_relation_type(request.relation_type)
    updated = resolver.commit(request.data)
    logger.debug("User %s connected %s.%s -> %s.%s", user_id,
                 request.source.table, request.source.column,
                 request.target.table, request.target.column)
    return SchemaResponse(data=updated, changed=updated is not request.data)


@app.post("/api/edges/activate", response_model=SchemaResponse, response_model_exclude_none=True)
async def activate_edge(request: EdgeActivateRequest, user_id: int = Depends(require_user_id)):
    """Remove the foreign key behind an edge."""
    updated = edges.remove_edge(request.data, request.edge_id)
    return SchemaResponse(data=updated, changed=updated is not request.data)


@app.post("/api/tables/recolor", response_model=SchemaResponse, response_model_exclude_none=True)
async def recolor_table(request: RecolorRequest, user_id: int = Depends(require_user_id)):
    updated = edges.recolor(request.data, request.table, request.color)
    return SchemaResponse(data=updated, changed=updated is not request.data)
