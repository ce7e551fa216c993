"""Configuration REST API routes - V1."""

from fastapi import APIRouter, HTTPException, Depends

from ...models.configuration import (
    CreateConfigurationRequest,
    UpdateConfigurationRequest,
    ConfigurationResponse,
    ConfigurationListResponse,
    DiagnosticsResponse,
    FileSearchResponse,
    ModelListResponse
)
from ...db import DatabaseConnection, ConfigurationRepository
from ...gateway import ChatGateway, GatewayError, NotFound
from ...services import (
    ConfigurationService,
    ConfigurationDiagnostics,
    enable_file_search,
    fetch_available_models
)

router = APIRouter(prefix="/api/v1/configurations", tags=["Configurations"])

# Database connection (set by main.py)
db_conn: DatabaseConnection = None
# Remote chat gateway (set by main.py)
gateway: ChatGateway = None


def get_configuration_service() -> ConfigurationService:
    """Dependency to get configuration service."""
    if db_conn is None:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return ConfigurationService(ConfigurationRepository(db_conn.conn))


def get_gateway() -> ChatGateway:
    """Dependency to get chat gateway."""
    if gateway is None:
        raise HTTPException(status_code=500, detail="Gateway not initialized")
    return gateway


def _require(service: ConfigurationService, config_id: str):
    config = service.repo.get(config_id)
    if not config:
        raise HTTPException(status_code=404, detail=f"Configuration not found: {config_id}")
    return config


@router.get("", response_model=ConfigurationListResponse)
async def list_configurations(service: ConfigurationService = Depends(get_configuration_service)):
    """List all configurations, oldest first."""
    configs = service.repo.list_all()
    return ConfigurationListResponse(
        configurations=[ConfigurationResponse.from_do(c) for c in configs],
        total=len(configs)
    )


@router.post("", response_model=ConfigurationResponse, status_code=201)
async def create_configuration(
    request: CreateConfigurationRequest,
    service: ConfigurationService = Depends(get_configuration_service)
):
    """Create a configuration. The first one stored becomes the default."""
    try:
        config = service.create(**request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return ConfigurationResponse.from_do(config)


@router.get("/{config_id}", response_model=ConfigurationResponse)
async def get_configuration(config_id: str, service: ConfigurationService = Depends(get_configuration_service)):
    return ConfigurationResponse.from_do(_require(service, config_id))


@router.patch("/{config_id}", response_model=ConfigurationResponse)
async def update_configuration(
    config_id: str,
    request: UpdateConfigurationRequest,
    service: ConfigurationService = Depends(get_configuration_service)
):
    """Update the fields present in the request body."""
    try:
        config = service.update(config_id, request.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if config is None:
        raise HTTPException(status_code=404, detail=f"Configuration not found: {config_id}")
    return ConfigurationResponse.from_do(config)


@router.delete("/{config_id}")
async def delete_configuration(config_id: str, service: ConfigurationService = Depends(get_configuration_service)):
    _require(service, config_id)
    if not service.remove(config_id):
        raise HTTPException(status_code=500, detail="Failed to delete configuration")
    return {"message": f"Configuration {config_id} deleted"}


@router.post("/{config_id}/default", response_model=ConfigurationResponse)
async def set_default_configuration(
    config_id: str,
    service: ConfigurationService = Depends(get_configuration_service)
):
    """Make this configuration the default for new threads and unbound turns."""
    try:
        config = service.make_default(config_id)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if config is None:
        raise HTTPException(status_code=404, detail=f"Configuration not found: {config_id}")
    return ConfigurationResponse.from_do(config)


@router.post("/{config_id}/diagnostics", response_model=DiagnosticsResponse)
async def run_diagnostics(
    config_id: str,
    service: ConfigurationService = Depends(get_configuration_service),
    gw: ChatGateway = Depends(get_gateway)
):
    """
    Check a configuration against the provider.

    Verifies the credential, the model (direct mode) or the assistant and
    knowledge store (assisted mode), and tries creating a thread.
    """
    config = _require(service, config_id)
    report = await ConfigurationDiagnostics(gw).run(config)
    return DiagnosticsResponse(
        configuration_id=config_id,
        messages=report.messages,
        recommendations=report.recommendations,
        thread_creation_works=report.thread_creation_works,
        has_file_search_tool=report.has_file_search_tool,
        vector_store_attached=report.vector_store_attached
    )


@router.get("/{config_id}/models", response_model=ModelListResponse)
async def list_models(
    config_id: str,
    service: ConfigurationService = Depends(get_configuration_service),
    gw: ChatGateway = Depends(get_gateway)
):
    """List chat models usable with this configuration's credential."""
    config = _require(service, config_id)
    models = await fetch_available_models(gw, config)
    return ModelListResponse(configuration_id=config_id, models=models)


@router.post("/{config_id}/assistant/file-search", response_model=FileSearchResponse)
async def enable_assistant_file_search(
    config_id: str,
    service: ConfigurationService = Depends(get_configuration_service),
    gw: ChatGateway = Depends(get_gateway)
):
    """
    Enable the file_search tool on the configuration's assistant.

    Existing tools are kept, and the configured vector store is bound to the
    tool when the assistant does not reference it yet.
    """
    config = _require(service, config_id)
    if not config.assistant_id:
        raise HTTPException(status_code=400, detail="Configuration has no Assistant ID")

    try:
        setup = await enable_file_search(gw, config)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except GatewayError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return FileSearchResponse(
        configuration_id=config_id,
        assistant_id=setup.assistant.id,
        tools=[tool.type for tool in setup.assistant.tools],
        has_file_search_tool=setup.assistant.has_file_search,
        vector_store_ids=setup.assistant.vector_store_ids,
        vector_store_attached=setup.vector_store_attached,
        updated=setup.updated
    )
