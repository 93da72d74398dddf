"""
Pydantic schemas shared by the API layer
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Schema for error detail"""
    type: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    field: Optional[str] = Field(None, description="Field that caused the error")


class ErrorResponse(BaseModel):
    """Standard error response model"""
    error: str = Field(..., description="High-level error summary")
    detail: Optional[str] = Field(None, description="Detailed error message")
    details: Optional[List[ErrorDetail]] = Field(None, description="Structured validation details")
    error_code: Optional[str] = Field(None, description="Application-specific error code")
    request_id: Optional[str] = Field(None, description="Request identifier for tracing")


# Health Schemas

class HealthResponse(BaseModel):
    """Schema for health check response"""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    services: Dict[str, str] = Field(default_factory=dict, description="Dependent service status")
    version: Optional[str] = Field(None, description="API version")
