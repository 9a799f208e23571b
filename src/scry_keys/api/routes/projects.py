"""Project-scoped endpoints protected by API key authentication."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from scry_keys.api.middleware.api_key_auth import require_api_key
from scry_keys.api_keys.models import AuthenticatedApiKey


router = APIRouter(prefix="/projects", tags=["projects"])


class WhoAmIResponse(BaseModel):
    """The identity the request authenticated as."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="Key identifier")
    name: str = Field(description="Key name")
    prefix: str = Field(description="First characters of the key")
    project_id: str = Field(
        serialization_alias="projectId",
        validation_alias="projectId",
        description="Project the key was authenticated for",
    )


@router.get(
    "/{project}/whoami",
    response_model=WhoAmIResponse,
    response_model_by_alias=True,
)
async def whoami(
    project: str,
    api_key: Annotated[AuthenticatedApiKey, Depends(require_api_key)],
) -> WhoAmIResponse:
    """Echo the authenticated API key."""
    return WhoAmIResponse(
        id=api_key.id,
        name=api_key.name,
        prefix=api_key.prefix,
        project_id=api_key.project_id,
    )
