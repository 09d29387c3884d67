"""Configuration REST API router.

Endpoints (mounted under ``AppSettings.api_prefix``):

- ``GET    /``                     every stored document
- ``GET    /{config_type}``        stored document with defaults applied (404 if absent)
- ``GET    /{config_type}/defaults`` declared defaults for the type
- ``POST   /{config_type}``        create; a second create for the type is rejected
- ``PUT    /{config_type}``        validated merge (creates when absent)
- ``PATCH  /{config_type}``        same as PUT
- ``POST   /excuseSlips/render``   render the excuse-slip template
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request
from pydantic import BaseModel, Field

from nucash.application.configuration_store import ConfigurationStore
from nucash.domain.configuration import SystemConfiguration, default_configuration, parse_config_type
from nucash.infra.observability.logging import get_logger

router = APIRouter(tags=["configurations"])


def get_store(request: Request) -> ConfigurationStore:
    """Dependency returning the store built by the application lifespan."""
    store: ConfigurationStore = request.app.state.store
    return store


StoreDep = Annotated[ConfigurationStore, Depends(get_store)]
DocumentBody = Annotated[dict[str, Any], Body()]


# -- Request / Response models ------------------------------------------------


class RenderExcuseSlipRequest(BaseModel):
    substitutions: dict[str, Any] = Field(default_factory=dict)


class RenderExcuseSlipResponse(BaseModel):
    text: str


class ConfigurationListResponse(BaseModel):
    configurations: list[dict[str, Any]]


# -- Endpoints ----------------------------------------------------------------


@router.get("/")
def list_configurations(store: StoreDep) -> ConfigurationListResponse:
    """List every stored configuration document."""
    return ConfigurationListResponse(
        configurations=[doc.to_document() for doc in store.list_all()],
    )


@router.post("/excuseSlips/render")
def render_excuse_slip(
    body: RenderExcuseSlipRequest,
    store: StoreDep,
) -> RenderExcuseSlipResponse:
    """Render the excuse-slip template; unsupplied tokens stay verbatim."""
    text = store.render_excuse_slip(body.substitutions)
    get_logger(__name__).info("excuse_slip_rendered", substitutions=body.substitutions)
    return RenderExcuseSlipResponse(text=text)


@router.get("/{config_type}")
def get_configuration(config_type: str, store: StoreDep) -> dict[str, Any]:
    """Retrieve a configuration document with defaults applied."""
    return store.get(config_type).to_document()


@router.get("/{config_type}/defaults")
def get_configuration_defaults(config_type: str) -> dict[str, Any]:
    """Declared defaults for a configuration type."""
    return default_configuration(parse_config_type(config_type)).to_document()


@router.post("/{config_type}", status_code=201)
def create_configuration(
    config_type: str,
    store: StoreDep,
    body: Annotated[dict[str, Any] | None, Body()] = None,
) -> dict[str, Any]:
    """Create the document for a configuration type."""
    document = store.create(config_type, body or {})
    _log_change("configuration_created", document, body or {})
    return document.to_document()


@router.put("/{config_type}")
@router.patch("/{config_type}")
def update_configuration(config_type: str, body: DocumentBody, store: StoreDep) -> dict[str, Any]:
    """Merge a partial document into the stored configuration."""
    document = store.upsert(config_type, body)
    _log_change("configuration_changed", document, body)
    return document.to_document()


# -- Helpers ------------------------------------------------------------------


def _log_change(event: str, document: SystemConfiguration, body: dict[str, Any]) -> None:
    get_logger(__name__).info(
        event,
        config_type=document.config_type,
        admin_role=document.admin_role.value,
        changed_fields=sorted(body),
        updated_at=document.updated_at.isoformat() if document.updated_at else None,
    )
