"""Collection and category endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from prompt_library.api.models import (
    CategoryCreate,
    CategoryUpdate,
    CollectionCreate,
    CollectionUpdate,
)
from prompt_library.core.prompt_store import DuplicateNameError, PromptStore, get_prompt_store
from prompt_library.db.models import Category, Collection

collections_router = APIRouter()
categories_router = APIRouter()


# --- Collections ---


@collections_router.get("", response_model=list[Collection])
async def list_collections(store: PromptStore = Depends(get_prompt_store)) -> list[Collection]:
    return store.list_collections()


@collections_router.post("", response_model=Collection, status_code=201)
async def create_collection(
    data: CollectionCreate,
    store: PromptStore = Depends(get_prompt_store),
) -> Collection:
    try:
        return store.create_collection(data.name, data.description)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@collections_router.get("/{collection_id}", response_model=Collection)
async def get_collection(
    collection_id: str,
    store: PromptStore = Depends(get_prompt_store),
) -> Collection:
    collection = store.get_collection(collection_id)
    if not collection:
        raise HTTPException(status_code=404, detail=f"Collection '{collection_id}' not found")
    return collection


@collections_router.put("/{collection_id}", response_model=Collection)
async def update_collection(
    collection_id: str,
    data: CollectionUpdate,
    store: PromptStore = Depends(get_prompt_store),
) -> Collection:
    try:
        collection = store.update_collection(collection_id, **data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not collection:
        raise HTTPException(status_code=404, detail=f"Collection '{collection_id}' not found")
    return collection


@collections_router.delete("/{collection_id}", status_code=204)
async def delete_collection(
    collection_id: str,
    store: PromptStore = Depends(get_prompt_store),
) -> None:
    """Delete a collection. Its prompts are kept."""
    if not store.delete_collection(collection_id):
        raise HTTPException(status_code=404, detail=f"Collection '{collection_id}' not found")


@collections_router.post("/{collection_id}/prompts/{prompt_id}", response_model=Collection)
async def add_to_collection(
    collection_id: str,
    prompt_id: str,
    store: PromptStore = Depends(get_prompt_store),
) -> Collection:
    collection = store.add_to_collection(collection_id, prompt_id)
    if not collection:
        raise HTTPException(
            status_code=404,
            detail=f"Collection '{collection_id}' or prompt '{prompt_id}' not found",
        )
    return collection


@collections_router.delete("/{collection_id}/prompts/{prompt_id}", response_model=Collection)
async def remove_from_collection(
    collection_id: str,
    prompt_id: str,
    store: PromptStore = Depends(get_prompt_store),
) -> Collection:
    collection = store.remove_from_collection(collection_id, prompt_id)
    if not collection:
        raise HTTPException(status_code=404, detail=f"Collection '{collection_id}' not found")
    return collection


# --- Categories ---


@categories_router.get("", response_model=list[Category])
async def list_categories(store: PromptStore = Depends(get_prompt_store)) -> list[Category]:
    return store.list_categories()


@categories_router.post("", response_model=Category, status_code=201)
async def create_category(
    data: CategoryCreate,
    store: PromptStore = Depends(get_prompt_store),
) -> Category:
    try:
        return store.create_category(data.name, data.color, data.icon)
    except DuplicateNameError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@categories_router.put("/{category_id}", response_model=Category)
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    store: PromptStore = Depends(get_prompt_store),
) -> Category:
    try:
        category = store.update_category(category_id, **data.model_dump(exclude_unset=True))
    except DuplicateNameError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not category:
        raise HTTPException(status_code=404, detail=f"Category '{category_id}' not found")
    return category


@categories_router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: str,
    store: PromptStore = Depends(get_prompt_store),
) -> None:
    """Delete a category. Prompts filed under it keep the old name."""
    if not store.delete_category(category_id):
        raise HTTPException(status_code=404, detail=f"Category '{category_id}' not found")
