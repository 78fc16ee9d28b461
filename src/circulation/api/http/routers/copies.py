"""Copy API router: catalog maintenance and lending transitions."""

from fastapi import APIRouter, Depends, Query, Response

from src.circulation.api.http.deps import get_catalog_service, get_lending_state_machine
from src.circulation.api.http.errors import ensure_ok, unwrap
from src.circulation.api.http.schemas import (
    BorrowByIsbnRequest,
    BorrowRequest,
    CopyCreate,
    CopyResponse,
    CopyUpdate,
    IsbnCountResponse,
    copy_to_response,
)
from src.circulation.core.errors import ErrorKind
from src.circulation.core.result import fail
from src.circulation.core.services import CatalogService, LendingStateMachine
from src.circulation.core.validation import normalize_isbn

router = APIRouter(prefix="/api/copies", tags=["copies"])


@router.post("", response_model=CopyResponse, status_code=201)
def add_copy(
    body: CopyCreate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> CopyResponse:
    """Register a new copy of a book."""
    return copy_to_response(unwrap(catalog.add_copy(body.isbn, body.title, body.author)))


@router.get("", response_model=list[CopyResponse])
def list_copies(
    available: bool | None = None,
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[CopyResponse]:
    """List copies, optionally only those on the shelf (or only those on loan)."""
    return [copy_to_response(copy) for copy in catalog.list_copies(available)]


@router.get("/search", response_model=list[CopyResponse])
def search_copies(
    title: str | None = None,
    author: str | None = None,
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[CopyResponse]:
    """Case-insensitive substring search on title or author."""
    if title is not None:
        copies = unwrap(catalog.search_by_title(title))
        if author is not None:
            lowered = author.strip().lower()
            copies = [copy for copy in copies if lowered in copy.author.lower()]
    elif author is not None:
        copies = unwrap(catalog.search_by_author(author))
    else:
        copies = unwrap(fail(ErrorKind.INVALID_ARGUMENT, "A title or author pattern is required"))
    return [copy_to_response(copy) for copy in copies]


@router.post("/borrow-by-isbn", response_model=CopyResponse)
def borrow_by_isbn(
    body: BorrowByIsbnRequest,
    lending: LendingStateMachine = Depends(get_lending_state_machine),
) -> CopyResponse:
    """Lend the first available copy of an ISBN."""
    return copy_to_response(unwrap(lending.borrow_by_isbn(body.isbn, body.borrower_id)))


@router.get("/isbn/{isbn}", response_model=list[CopyResponse])
def copies_by_isbn(
    isbn: str,
    available: bool = Query(default=False, description="Only copies on the shelf"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[CopyResponse]:
    result = catalog.available_by_isbn(isbn) if available else catalog.find_by_isbn(isbn)
    return [copy_to_response(copy) for copy in unwrap(result)]


@router.get("/isbn/{isbn}/count", response_model=IsbnCountResponse)
def count_by_isbn(
    isbn: str,
    catalog: CatalogService = Depends(get_catalog_service),
) -> IsbnCountResponse:
    normalized = unwrap(normalize_isbn(isbn))
    total = unwrap(catalog.count_by_isbn(normalized))
    available = unwrap(catalog.available_count_by_isbn(normalized))
    return IsbnCountResponse(
        isbn=normalized,
        total=total,
        available=available,
    )


@router.put("/isbn/{isbn}", response_model=list[CopyResponse])
def update_isbn_metadata(
    isbn: str,
    body: CopyUpdate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[CopyResponse]:
    """Retitle every copy of an ISBN at once."""
    copies = unwrap(catalog.update_isbn_metadata(isbn, body.title, body.author))
    return [copy_to_response(copy) for copy in copies]


@router.get("/{copy_id}", response_model=CopyResponse)
def get_copy(
    copy_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
) -> CopyResponse:
    return copy_to_response(unwrap(catalog.get_copy(copy_id)))


@router.put("/{copy_id}", response_model=CopyResponse)
def update_copy(
    copy_id: int,
    body: CopyUpdate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> CopyResponse:
    return copy_to_response(unwrap(catalog.update_copy(copy_id, body.title, body.author)))


@router.delete("/{copy_id}", status_code=204)
def remove_copy(
    copy_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
) -> Response:
    ensure_ok(catalog.remove_copy(copy_id))
    return Response(status_code=204)


@router.post("/{copy_id}/borrow", response_model=CopyResponse)
def borrow_copy(
    copy_id: int,
    body: BorrowRequest,
    lending: LendingStateMachine = Depends(get_lending_state_machine),
) -> CopyResponse:
    return copy_to_response(unwrap(lending.borrow_by_copy(copy_id, body.borrower_id)))


@router.post("/{copy_id}/return", response_model=CopyResponse)
def return_copy(
    copy_id: int,
    lending: LendingStateMachine = Depends(get_lending_state_machine),
) -> CopyResponse:
    return copy_to_response(unwrap(lending.return_copy(copy_id)))
