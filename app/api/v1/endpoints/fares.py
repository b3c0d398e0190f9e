"""Fare API endpoints."""
from typing import Optional
import uuid

from fastapi import APIRouter, Query, Request, Response, status

from app.api.deps import DB, Cache, CurrentUser, AdminUser, StaffUser
from app.api.response_cache import cached_response, invalidate
from app.schemas.base import MessageResponse
from app.schemas.fare import FareCreate, FareListResponse, FareResponse, FareUpdate
from app.services.fare_service import FareService

router = APIRouter(tags=["Fares"])

FARES_CACHE = "fares"


@router.get("", response_model=FareListResponse)
async def list_fares(
    request: Request,
    response: Response,
    db: DB,
    cache: Cache,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    from_city: Optional[str] = Query(None, alias="fromCity"),
    to_city: Optional[str] = Query(None, alias="toCity"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
):
    """Get paginated list of fares. Cached until the next fare write."""

    async def load():
        fares, total = await FareService(db).get_fares(
            page=page, size=size, from_city=from_city, to_city=to_city, is_active=is_active
        )
        return FareListResponse.build(
            [FareResponse.model_validate(f) for f in fares], total, page, size
        )

    return await cached_response(request, response, cache, FARES_CACHE, load)


@router.get("/route", response_model=FareResponse)
async def get_fare_by_route(
    db: DB,
    current_user: CurrentUser,
    from_city: str = Query(..., alias="fromCity"),
    to_city: str = Query(..., alias="toCity"),
):
    """Look up the fare for an exact route (case-insensitive)."""
    fare = await FareService(db).get_fare_by_route(from_city, to_city)
    return FareResponse.model_validate(fare)


@router.post("", response_model=FareResponse, status_code=status.HTTP_201_CREATED)
async def create_fare(data: FareCreate, db: DB, cache: Cache, current_user: StaffUser):
    fare = await FareService(db).create_fare(data)
    await invalidate(cache, FARES_CACHE)
    return FareResponse.model_validate(fare)


@router.get("/{fare_id}", response_model=FareResponse)
async def get_fare(fare_id: uuid.UUID, db: DB, current_user: CurrentUser):
    fare = await FareService(db).get_fare(fare_id)
    return FareResponse.model_validate(fare)


@router.put("/{fare_id}", response_model=FareResponse)
async def update_fare(fare_id: uuid.UUID, data: FareUpdate, db: DB, cache: Cache, current_user: StaffUser):
    fare = await FareService(db).update_fare(fare_id, data)
    await invalidate(cache, FARES_CACHE)
    return FareResponse.model_validate(fare)


@router.delete("/{fare_id}", response_model=MessageResponse)
async def delete_fare(fare_id: uuid.UUID, db: DB, cache: Cache, current_user: AdminUser):
    await FareService(db).delete_fare(fare_id)
    await invalidate(cache, FARES_CACHE)
    return MessageResponse(message="Fare deleted successfully")
