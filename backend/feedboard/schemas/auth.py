"""
Authentication schemas (Pydantic models for request/response).
"""

from pydantic import BaseModel, ConfigDict, Field


class Token(BaseModel):
    """
    JWT token response.

    Example response:
        {
            "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
            "token_type": "bearer"
        }
    """
    access_token: str = Field(
        ...,
        description="JWT access token",
        examples=["eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."]
    )
    token_type: str = Field(
        default="bearer",
        description="Token type (always 'bearer' for JWT)"
    )


class UserResponse(BaseModel):
    """User information; never includes the password hash."""
    id: int = Field(..., description="User's unique ID")
    email: str = Field(..., description="User's email address")
    name: str = Field(..., description="User's full name")
    is_active: bool = Field(..., description="Whether user account is active")
    is_admin: bool = Field(..., description="Whether user may do anything")

    model_config = ConfigDict(from_attributes=True)
