"""Pydantic models for the completion API."""

from pydantic import BaseModel, ConfigDict, Field


class CompletionRequest(BaseModel):
    """Request body: which message to answer, with which model."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(
        alias="messageId", description="Id of the last message to include"
    )
    model: str = Field(description="Requested model name; selects the provider")


class HealthResponse(BaseModel):
    status: str = "ok"
