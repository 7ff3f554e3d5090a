from typing import Optional

from fastapi import APIRouter, Depends, Query

from backoffice.api.deps import get_store_service, require_admin
from backoffice.domain.entities import User
from backoffice.domain.schemas import MessageResponse, StoreCreate, StoreResponse, StoreUpdate
from backoffice.services.stores import StoreService

router = APIRouter()


@router.get("", response_model=list[StoreResponse])
async def list_stores(
    name: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: str = Query(default="ASC", pattern=r'^(ASC|DESC|asc|desc)$'),
    stores: StoreService = Depends(get_store_service),
):
    """List stores, optionally searched by name or address."""
    return await stores.find_all(
        filter={"name": name},
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/{store_id}", response_model=StoreResponse)
async def get_store(store_id: str, stores: StoreService = Depends(get_store_service)):
    return await stores.find_by_id(store_id)


@router.post("", response_model=StoreResponse, status_code=201)
async def create_store(
    data: StoreCreate,
    admin: User = Depends(require_admin),
    stores: StoreService = Depends(get_store_service),
):
    return await stores.create(data.model_dump(), actor_id=admin.id)


@router.put("/{store_id}", response_model=StoreResponse)
async def update_store(
    store_id: str,
    data: StoreUpdate,
    admin: User = Depends(require_admin),
    stores: StoreService = Depends(get_store_service),
):
    return await stores.update(store_id, data.model_dump(exclude_unset=True), actor_id=admin.id)


@router.delete("/{store_id}", response_model=MessageResponse)
async def delete_store(
    store_id: str,
    _admin: User = Depends(require_admin),
    stores: StoreService = Depends(get_store_service),
):
    await stores.remove(store_id)
    return {"message": "Store deleted successfully"}
