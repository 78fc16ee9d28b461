"""Borrower API router."""

from fastapi import APIRouter, Depends, Response

from src.circulation.api.http.deps import get_borrower_registry, get_catalog_service
from src.circulation.api.http.errors import ensure_ok, unwrap
from src.circulation.api.http.schemas import (
    BorrowerCreate,
    BorrowerResponse,
    BorrowerUpdate,
    CopyResponse,
    CountResponse,
    borrower_to_response,
    copy_to_response,
)
from src.circulation.core.services import BorrowerRegistry, CatalogService

router = APIRouter(prefix="/api/borrowers", tags=["borrowers"])


@router.post("", response_model=BorrowerResponse, status_code=201)
def register_borrower(
    body: BorrowerCreate,
    registry: BorrowerRegistry = Depends(get_borrower_registry),
) -> BorrowerResponse:
    return borrower_to_response(unwrap(registry.register(body.name, body.email)))


@router.get("", response_model=list[BorrowerResponse])
def list_borrowers(
    with_loans: bool | None = None,
    registry: BorrowerRegistry = Depends(get_borrower_registry),
) -> list[BorrowerResponse]:
    """List borrowers, optionally only those holding (or not holding) copies."""
    return [borrower_to_response(borrower) for borrower in registry.list_borrowers(with_loans)]


@router.get("/search", response_model=list[BorrowerResponse])
def search_borrowers(
    name: str = "",
    registry: BorrowerRegistry = Depends(get_borrower_registry),
) -> list[BorrowerResponse]:
    return [borrower_to_response(borrower) for borrower in unwrap(registry.search_by_name(name))]


@router.get("/by-email", response_model=BorrowerResponse)
def borrower_by_email(
    email: str,
    registry: BorrowerRegistry = Depends(get_borrower_registry),
) -> BorrowerResponse:
    return borrower_to_response(unwrap(registry.find_by_email(email)))


@router.get("/{borrower_id}", response_model=BorrowerResponse)
def get_borrower(
    borrower_id: int,
    registry: BorrowerRegistry = Depends(get_borrower_registry),
) -> BorrowerResponse:
    return borrower_to_response(unwrap(registry.get(borrower_id)))


@router.put("/{borrower_id}", response_model=BorrowerResponse)
def update_borrower(
    borrower_id: int,
    body: BorrowerUpdate,
    registry: BorrowerRegistry = Depends(get_borrower_registry),
) -> BorrowerResponse:
    return borrower_to_response(unwrap(registry.update(borrower_id, body.name, body.email)))


@router.delete("/{borrower_id}", status_code=204)
def delete_borrower(
    borrower_id: int,
    registry: BorrowerRegistry = Depends(get_borrower_registry),
) -> Response:
    ensure_ok(registry.delete(borrower_id))
    return Response(status_code=204)


@router.get("/{borrower_id}/copies", response_model=list[CopyResponse])
def copies_held(
    borrower_id: int,
    registry: BorrowerRegistry = Depends(get_borrower_registry),
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[CopyResponse]:
    """Copies the borrower currently holds."""
    unwrap(registry.get(borrower_id))
    return [copy_to_response(copy) for copy in catalog.copies_held_by(borrower_id)]


@router.get("/{borrower_id}/copy-count", response_model=CountResponse)
def copy_count(
    borrower_id: int,
    registry: BorrowerRegistry = Depends(get_borrower_registry),
) -> CountResponse:
    return CountResponse(count=unwrap(registry.borrowed_copy_count(borrower_id)))
