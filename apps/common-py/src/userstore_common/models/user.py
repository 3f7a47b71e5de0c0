"""User model for the record store."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class User(BaseModel):
    """User entity model.

    Every field is optional on input and defaults to an empty string, so a
    partial or empty payload still decodes to a User.
    """

    id: str = Field(default="", description="Caller-supplied identifier for the user")
    name: str = Field(default="", description="Full name of the user")
    email: str = Field(default="", description="Email address of the user (free-form)")

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "id": "user-123",
                "name": "Jane Doe",
                "email": "jane.doe@example.com",
            }
        },
    )

    @field_validator("id", "name", "email", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value
