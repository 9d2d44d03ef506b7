"""
Data Models Module

This module defines Pydantic models for request/response validation
and data serialization throughout the gateway service.

Models are organized by functional area:
- Posts models (stored posts, search requests, listing responses)
- Health check models
- Error models
"""

from pydantic import BaseModel, Field
from typing import Optional, List


# ============================================================================
# Posts Models
# ============================================================================

class Post(BaseModel):
    """A forum post as served by the local posts search."""
    id: str = Field(..., description="Post identifier (falls back to link, then title)")
    title: str = Field(default="", description="Post title")
    tags: str = Field(default="", description="Comma-joined tags")
    link: str = Field(default="", description="Link to the post")


class SearchRequest(BaseModel):
    """JSON body accepted by POST /api/search."""
    q: Optional[str] = Field(None, description="Whitespace-separated search terms")


class PostListResponse(BaseModel):
    """Listing or search result wrapper."""
    items: List[Post] = Field(default_factory=list, description="Matching posts")


# ============================================================================
# Health Check Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="Error type or code")
    message: Optional[str] = Field(None, description="Human-readable error message")
    detail: Optional[str] = Field(None, description="Additional error detail")
