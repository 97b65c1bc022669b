"""
Pydantic schemas for the HTTP API.

Request fields are optional so that missing values reach the services and
come back as 400 rather than FastAPI's 422.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from megumi.db import ProductRecord


class CredentialsRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    service: str
    backend: str


class ProductPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    category: Optional[str] = None
    price: Any = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")

    def provided_fields(self) -> dict:
        """Only the fields the client actually sent, keyed as in the API."""
        return self.model_dump(exclude_unset=True, by_alias=True)


class ProductResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    category: str
    price: Optional[float] = None
    description: str = ""
    image_url: str = Field(default="", alias="imageUrl")
    created_at: datetime = Field(alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_record(cls, record: ProductRecord) -> "ProductResponse":
        return cls.model_validate(record.as_dict())
