"""
Pydantic schemas for domain records and request/response validation.

This module contains:
- Domain records returned by the stores and the services
- Request models for incoming data validation
- Response models for the ambient endpoints

Business rules (blank text, length limits, duplicates) are enforced by the
services, not here; request models only check shape and types.
"""

from typing import Optional

from pydantic import BaseModel, Field

# Ranges of the integer id and timestamp columns
ID_MIN = -2**31
ID_MAX = 2**31 - 1
EPOCH_MIN = -2**63
EPOCH_MAX = 2**63 - 1


# =============================================================================
# Domain Records
# =============================================================================

class Account(BaseModel):
    """
    A registered account, as returned by the account store.
    Also the response body of /register and /login.
    """
    account_id: int = Field(..., description="Generated account identifier")
    username: str = Field(..., description="Unique username")
    password: str = Field(..., description="Plain text password")

    model_config = {
        "from_attributes": True,  # Allow creating from ORM objects
    }


class Message(BaseModel):
    """
    A posted message, as returned by the message store.

    Built as a snapshot of the ORM row, so a message captured before a
    delete stays readable after the row is gone.
    """
    message_id: int = Field(..., description="Generated message identifier")
    posted_by: int = Field(..., description="Author account id")
    message_text: str = Field(..., description="Message content")
    time_posted_epoch: int = Field(..., description="Creation time in seconds since the epoch")

    model_config = {
        "from_attributes": True,
    }


# =============================================================================
# Pydantic Request Models
# =============================================================================

class AccountCredentials(BaseModel):
    """Request body for POST /register and POST /login."""
    username: str = Field(..., description="Account username")
    password: str = Field(..., description="Account password")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"username": "alice", "password": "pass1"}
            ]
        }
    }


class MessageCreate(BaseModel):
    """
    Request body for POST /messages.

    time_posted_epoch is optional; the API fills in the current time
    when it is missing.
    """
    posted_by: int = Field(..., ge=ID_MIN, le=ID_MAX, description="Author account id")
    message_text: str = Field(..., description="Message content")
    time_posted_epoch: Optional[int] = Field(
        None,
        ge=EPOCH_MIN,
        le=EPOCH_MAX,
        description="Creation time in seconds since the epoch"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"posted_by": 1, "message_text": "hi", "time_posted_epoch": 1669947792}
            ]
        }
    }


class MessageTextUpdate(BaseModel):
    """Request body for PATCH /messages/{message_id}."""
    message_text: str = Field(..., description="Replacement message text")


# =============================================================================
# Pydantic Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Response model for error responses."""
    detail: str = Field(..., description="Error description")


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
