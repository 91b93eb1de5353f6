"""Client for the schema persistence / export / import service."""

import logging
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Type, Union

import httpx
from pydantic import BaseModel, ConfigDict

from .access import AccessLevel
from .auth import SessionContext
from .config import get_settings
from .errors import (
    AccessDenied,
    Conflict,
    NetworkError,
    NotFound,
    ParseError,
    SchemaServiceError,
    Unauthorized,
    UnsupportedFormat,
)
from .schema_model import DatabaseSchema

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_NAME = "Untitled Schema"


class ExportFormat(str, Enum):
    MYSQL = "mysql"
    POSTGRES = "postgres"
    MONGO = "mongo"


class ImportFormat(str, Enum):
    MYSQL = "mysql"
    POSTGRES = "postgres"


class SchemaRecord(BaseModel):
    """A persisted schema as seen by the editor."""
    model_config = ConfigDict(frozen=True)

    identity: Optional[int] = None
    name: str = DEFAULT_SCHEMA_NAME
    data: DatabaseSchema = DatabaseSchema()
    access_level: AccessLevel = AccessLevel.OWNER
    share_token: Optional[str] = None


class SchemaStore(Protocol):
    """The four collaborator operations the editor depends on."""

    async def load_schema(self, schema_id: Optional[int] = None,
                          share_token: Optional[str] = None) -> SchemaRecord:
        ...

    async def save_schema(self, identity: Optional[int], schema: DatabaseSchema, name: str,
                          share_token: Optional[str] = None) -> SchemaRecord:
        ...

    async def export_schema(self, schema: DatabaseSchema, fmt: Union[ExportFormat, str]) -> str:
        ...

    async def import_schema(self, text: str, fmt: Union[ImportFormat, str]) -> DatabaseSchema:
        ...


def _coerce_format(fmt: Union[str, Enum], enum_type: Type[Enum]) -> Enum:
    try:
        return enum_type(fmt)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise UnsupportedFormat(f"Unsupported format {fmt!r} (expected one of: {allowed})")


class HttpSchemaStore:
    """SchemaStore backed by the REST API of the schema service."""

    def __init__(self, session: SessionContext, base_url: Optional[str] = None,
                 timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            session: Source of the bearer token for every request.
            base_url: API root. Defaults to SCHEMA_API_URL.
            timeout: Per-request timeout in seconds. Defaults to HTTP_TIMEOUT_SECONDS.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        settings = get_settings()
        self.session = session
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        headers.update(self.session.auth_headers())
        return headers

    async def _request(
        self,
        method: str,
        endpoint: str,
        bad_request: Type[SchemaServiceError] = NetworkError,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """Make a request and map failures onto the error taxonomy.

        Args:
            method: HTTP method
            endpoint: Path below the API root
            bad_request: Exception raised for 400/422 answers
            **kwargs: Passed through to httpx

        Returns:
            Decoded JSON body ({} for empty responses)
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Schema service request %s %s failed: %s", method, endpoint, e)
            raise NetworkError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            raise self._error_for(response, bad_request)

        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON from schema service: {e}") from e

    @staticmethod
    def _error_for(response: httpx.Response, bad_request: Type[SchemaServiceError]) -> SchemaServiceError:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("error") or body.get("detail") or response.text
        else:
            message = response.text
        message = str(message or f"HTTP {response.status_code}")

        status = response.status_code
        if status in (400, 422):
            return bad_request(message)
        if status == 401:
            return Unauthorized(message)
        if status == 403:
            return AccessDenied(message)
        if status == 404:
            return NotFound(message)
        if status == 409:
            return Conflict(message)
        return NetworkError(f"HTTP {status}: {message}")

    @staticmethod
    def _record(body: Dict[str, Any], share_token: Optional[str] = None,
                fallback: Optional[DatabaseSchema] = None) -> SchemaRecord:
        data = body.get("data")
        schema = DatabaseSchema.from_wire(data) if data is not None else (fallback or DatabaseSchema())
        return SchemaRecord(
            identity=body.get("id"),
            name=body.get("name") or DEFAULT_SCHEMA_NAME,
            data=schema,
            access_level=body.get("access_level") or AccessLevel.OWNER,
            share_token=share_token,
        )

    async def load_schema(self, schema_id: Optional[int] = None,
                          share_token: Optional[str] = None) -> SchemaRecord:
        """Load by id (optionally with a share token) or by share token alone."""
        if schema_id is None:
            if not share_token:
                raise ValueError("load_schema needs a schema id or a share token")
            body = await self._request("GET", f"/shared/{share_token}")
        else:
            params = {"token": share_token} if share_token else None
            body = await self._request("GET", f"/schemas/{schema_id}", params=params)
        return self._record(body, share_token)

    async def save_schema(self, identity: Optional[int], schema: DatabaseSchema, name: str,
                          share_token: Optional[str] = None) -> SchemaRecord:
        """Create when `identity` is None, update otherwise."""
        if identity is None:
            body = await self._request(
                "POST", "/schemas",
                json={"name": name, "data": schema.to_wire(), "is_public": False},
            )
        else:
            params = {"token": share_token} if share_token else None
            body = await self._request(
                "PUT", f"/schemas/{identity}", params=params,
                json={"name": name, "data": schema.to_wire()},
            )
        record = self._record(body, share_token, fallback=schema)
        if record.identity is None:
            record = record.model_copy(update={"identity": identity})
        return record

    async def export_schema(self, schema: DatabaseSchema, fmt: Union[ExportFormat, str]) -> str:
        """Translate a schema into DDL (or a document-store script)."""
        export_format = _coerce_format(fmt, ExportFormat)
        body = await self._request(
            "POST", "/export", bad_request=UnsupportedFormat,
            json={"data": schema.to_wire(), "format": export_format.value},
        )
        return body.get("sql", "")

    async def import_schema(self, text: str, fmt: Union[ImportFormat, str]) -> DatabaseSchema:
        """Parse SQL DDL into a fresh schema."""
        import_format = _coerce_format(fmt, ImportFormat)
        body = await self._request(
            "POST", "/import", bad_request=ParseError,
            json={"sql": text, "format": import_format.value},
        )
        return DatabaseSchema.from_wire(body.get("data"))
