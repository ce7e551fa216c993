"""Configuration API models."""

from datetime import datetime
from typing import Optional, List
from pydantic import AnyHttpUrl, BaseModel, Field, field_serializer, field_validator

from ..db.database_models import ConfigurationDO, WorkflowMode
from ..utils.logger import mask_secret


class CreateConfigurationRequest(BaseModel):
    """Request model for creating a configuration."""

    name: str = Field(description="Display name", min_length=1, max_length=200)
    api_key: str = Field(description="Provider credential", min_length=1)
    model: str = Field(description="Model identifier", min_length=1)
    assistant_id: Optional[str] = Field(None, description="Assistant identifier (assisted mode)")
    vector_store_id: Optional[str] = Field(None, description="Knowledge store identifier")
    mode: Optional[WorkflowMode] = Field(None, description="Workflow mode; assisted when an assistant_id is given")
    webhook_url: Optional[AnyHttpUrl] = Field(None, description="Absolute http(s) URL notified after each successful turn")
    is_default: bool = Field(default=False, description="Make this the default configuration")

    @field_validator("webhook_url", mode="before")
    @classmethod
    def blank_webhook_is_none(cls, value):
        return value or None

    @field_serializer("webhook_url")
    def serialize_webhook_url(self, value: Optional[AnyHttpUrl]) -> Optional[str]:
        return str(value) if value is not None else None


class UpdateConfigurationRequest(BaseModel):
    """Request model for updating a configuration; omitted fields are kept."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    api_key: Optional[str] = Field(None, min_length=1)
    model: Optional[str] = Field(None, min_length=1)
    assistant_id: Optional[str] = None
    vector_store_id: Optional[str] = None
    mode: Optional[WorkflowMode] = None
    webhook_url: Optional[AnyHttpUrl] = None

    @field_validator("webhook_url", mode="before")
    @classmethod
    def blank_webhook_is_none(cls, value):
        return value or None

    @field_serializer("webhook_url")
    def serialize_webhook_url(self, value: Optional[AnyHttpUrl]) -> Optional[str]:
        return str(value) if value is not None else None


class ConfigurationResponse(BaseModel):
    """Response model for a configuration; the credential is masked."""

    id: str
    name: str
    api_key: str = Field(description="Masked credential")
    model: str
    assistant_id: Optional[str] = None
    vector_store_id: Optional[str] = None
    mode: WorkflowMode
    webhook_url: Optional[str] = None
    is_default: bool
    created_at: datetime

    @classmethod
    def from_do(cls, config: ConfigurationDO) -> "ConfigurationResponse":
        return cls(
            id=config.id,
            name=config.name,
            api_key=mask_secret(config.api_key),
            model=config.model,
            assistant_id=config.assistant_id,
            vector_store_id=config.vector_store_id,
            mode=config.mode,
            webhook_url=config.webhook_url,
            is_default=config.is_default,
            created_at=config.created_at
        )


class ConfigurationListResponse(BaseModel):
    configurations: List[ConfigurationResponse]
    total: int


class DiagnosticsResponse(BaseModel):
    """Result of running diagnostics on a configuration."""

    configuration_id: str
    messages: List[str] = Field(description="Check-by-check log")
    recommendations: List[str] = Field(description="Suggested fixes")
    thread_creation_works: bool
    has_file_search_tool: Optional[bool] = Field(None, description="Assistant has the file_search tool (assisted mode)")
    vector_store_attached: Optional[bool] = Field(None, description="Configured vector store is bound to the assistant")


class ModelListResponse(BaseModel):
    configuration_id: str
    models: List[str]


class FileSearchResponse(BaseModel):
    """Assistant state after enabling file search."""

    configuration_id: str
    assistant_id: str
    tools: List[str] = Field(description="Tool types now on the assistant")
    has_file_search_tool: bool
    vector_store_ids: List[str]
    vector_store_attached: Optional[bool] = None
    updated: bool = Field(description="Whether the assistant was modified")
