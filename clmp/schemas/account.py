"""
Pydantic schemas for account endpoints.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class DeleteUserRequest(BaseModel):
    """Request schema for account deletion."""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"userId": "3f1c2a9e-5b7d-4c1e-9a2b-8d6e4f0a1b2c"}},
    )

    user_id: Optional[str] = Field(None, alias="userId", description="Id of the account to delete")


class DeleteUserResponse(BaseModel):
    message: str = Field(..., description="Result message")
