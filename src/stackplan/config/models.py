"""Pydantic models for stackplan settings."""

from typing import Any, Dict, List
from pydantic import BaseModel, Field


class ExecutorSettings(BaseModel):
    """Apply concurrency and timeouts."""
    parallelism: int = Field(default=10, ge=1, description="Maximum concurrent provider operations")
    operation_timeout: float = Field(default=1800, gt=0, description="Seconds before a single operation fails")

    class Config:
        extra = "forbid"


class ProviderSettings(BaseModel):
    """Provisioning API client settings."""
    kind: str = Field(default="http", description="Provider implementation")
    base_url: str = Field(default="http://localhost:8080/api/v1", description="Provisioning API base URL")
    token_env: str = Field(default="STACKPLAN_PROVIDER_TOKEN", description="Environment variable holding the API token")
    request_timeout: float = Field(default=30, gt=0)
    poll_interval: float = Field(default=2, gt=0)
    poll_timeout: float = Field(default=3600, gt=0)
    max_retries: int = Field(default=3, ge=0)

    class Config:
        extra = "forbid"


class StateSettings(BaseModel):
    """State file location and locking."""
    directory: str = Field(default=".stackplan/state", description="Directory holding one state file per environment")
    lock: bool = Field(default=True, description="Lock the state file during apply")

    class Config:
        extra = "forbid"


class Settings(BaseModel):
    """Complete stackplan configuration."""
    executor: ExecutorSettings = Field(default_factory=ExecutorSettings)
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    state: StateSettings = Field(default_factory=StateSettings)
    defaults: Dict[str, Any] = Field(default_factory=dict, description="Attribute defaults such as location")
    resource_types: Dict[str, Dict[str, List[str]]] = Field(default_factory=dict, description="Extra resource type schemas")

    class Config:
        extra = "forbid"
