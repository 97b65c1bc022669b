"""
HTTP routes for the record service API.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from megumi.catalog import CatalogService
from megumi.credentials import CredentialService
from megumi.dependencies import (
    get_catalog_service,
    get_credential_service,
    get_record_store,
)
from megumi.schemas import (
    CredentialsRequest,
    HealthResponse,
    MessageResponse,
    ProductPayload,
    ProductResponse,
)
from megumi.store import RecordStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(store: RecordStore = Depends(get_record_store)):
    backend = store.connect()
    return HealthResponse(status="ok", service="megumi", backend=backend.kind.value)


@router.post("/auth/register", response_model=MessageResponse, status_code=201)
def register(
    payload: Optional[CredentialsRequest] = None,
    credentials: CredentialService = Depends(get_credential_service),
):
    if payload is None:
        payload = CredentialsRequest()
    credentials.register(payload.email, payload.password)
    return MessageResponse(message="Registration successful.")


@router.post("/auth/login", response_model=MessageResponse)
def login(
    payload: Optional[CredentialsRequest] = None,
    credentials: CredentialService = Depends(get_credential_service),
):
    if payload is None:
        payload = CredentialsRequest()
    credentials.login(payload.email, payload.password)
    return MessageResponse(message="Login successful.")


@router.get("/products", response_model=list[ProductResponse])
def list_products(
    category: Optional[str] = Query(None),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return [ProductResponse.from_record(p) for p in catalog.list(category)]


@router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(
    payload: Optional[ProductPayload] = None,
    catalog: CatalogService = Depends(get_catalog_service),
):
    if payload is None:
        payload = ProductPayload()
    product = catalog.create(payload.provided_fields())
    return ProductResponse.from_record(product)


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
):
    return ProductResponse.from_record(catalog.get(product_id))


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    payload: Optional[ProductPayload] = None,
    catalog: CatalogService = Depends(get_catalog_service),
):
    if payload is None:
        payload = ProductPayload()
    product = catalog.update(product_id, payload.provided_fields())
    return ProductResponse.from_record(product)


@router.delete("/products/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
):
    catalog.delete(product_id)
    return MessageResponse(message="Product removed.")
