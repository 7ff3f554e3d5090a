from typing import Optional

from fastapi import APIRouter, Depends, Query

from backoffice.api.deps import get_planogram_service, require_admin
from backoffice.domain.entities import User
from backoffice.domain.schemas import MessageResponse, PlanogramCreate, PlanogramResponse, PlanogramUpdate
from backoffice.services.planograms import PlanogramService

router = APIRouter()


@router.get("", response_model=list[PlanogramResponse])
async def list_planograms(
    store_id: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: str = Query(default="ASC", pattern=r'^(ASC|DESC|asc|desc)$'),
    planograms: PlanogramService = Depends(get_planogram_service),
):
    """List planograms, optionally for one store and searched by name or description."""
    return await planograms.find_all(
        filter={"store_id": store_id},
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/{planogram_id}", response_model=PlanogramResponse)
async def get_planogram(planogram_id: str, planograms: PlanogramService = Depends(get_planogram_service)):
    return await planograms.find_by_id(planogram_id)


@router.post("", response_model=PlanogramResponse, status_code=201)
async def create_planogram(
    data: PlanogramCreate,
    admin: User = Depends(require_admin),
    planograms: PlanogramService = Depends(get_planogram_service),
):
    return await planograms.create(data.model_dump(), actor_id=admin.id)


@router.put("/{planogram_id}", response_model=PlanogramResponse)
async def update_planogram(
    planogram_id: str,
    data: PlanogramUpdate,
    admin: User = Depends(require_admin),
    planograms: PlanogramService = Depends(get_planogram_service),
):
    return await planograms.update(planogram_id, data.model_dump(exclude_unset=True), actor_id=admin.id)


@router.delete("/{planogram_id}", response_model=MessageResponse)
async def delete_planogram(
    planogram_id: str,
    _admin: User = Depends(require_admin),
    planograms: PlanogramService = Depends(get_planogram_service),
):
    await planograms.remove(planogram_id)
    return {"message": "Planogram deleted successfully"}
