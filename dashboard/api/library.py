from fastapi import APIRouter, HTTPException, Query
from typing import List, Optional

from core.catalog import get_categories, get_authors, get_protocol_by_id, search_protocols
from shared.models import CategorySchema, AuthorSchema, LibraryProtocolSchema, LibraryResponse

router = APIRouter(prefix="/api/library", tags=["library"])

@router.get("/categories", response_model=List[CategorySchema])
async def list_categories():
    """
    Категории библиотеки с количеством протоколов
    """
    return get_categories()

@router.get("/authors", response_model=List[AuthorSchema])
async def list_authors():
    return get_authors()

@router.get("/protocols", response_model=LibraryResponse)
async def list_protocols(
    category: Optional[str] = Query(None),
    author: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100)
):
    """
    Протоколы библиотеки с фильтрацией по категории, автору и тексту
    """
    items = search_protocols(category=category, author=author, search=search)
    return LibraryResponse(protocols=items, total=len(items))

@router.get("/protocols/{protocol_id}", response_model=LibraryProtocolSchema)
async def get_protocol(protocol_id: str):
    item = get_protocol_by_id(protocol_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Protocol not found")
    return item
