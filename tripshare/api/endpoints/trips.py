# tripshare/api/endpoints/trips.py
import logging
from typing import List

from fastapi import APIRouter, Depends, Path, Request, Response, status

from tripshare.api import deps
from tripshare.api.errors import to_http_exception
from tripshare.core.exceptions import TripShareError
from tripshare.core.rate_limit import limiter
from tripshare.schemas import place as place_schemas
from tripshare.schemas import trip as trip_schemas
from tripshare.services.gateway import TripGateway

logger = logging.getLogger(__name__)
router = APIRouter()

# Define tags for OpenAPI documentation grouping
trip_tags = ["Trips"]
place_tags = ["Places", "Trips"]


# === Trip CRUD ===
@router.post("", response_model=trip_schemas.TripView, status_code=status.HTTP_201_CREATED, tags=trip_tags)
@limiter.limit("20/minute")
async def create_trip(
    request: Request,  # For limiter state
    trip_in: trip_schemas.TripCreate,
    gateway: TripGateway = Depends(deps.get_gateway),
):
    """
    Create a new trip owned by the authenticated user.
    """
    try:
        return await gateway.create_trip(trip_in)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


@router.get("", response_model=List[trip_schemas.TripView], tags=trip_tags)
async def list_trips(gateway: TripGateway = Depends(deps.get_gateway)):
    """
    Trips the user owns plus trips shared with them, each with the caller's `userRole`.
    """
    try:
        return await gateway.list_trips()
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{trip_id}", response_model=trip_schemas.TripView, tags=trip_tags)
async def get_trip(
    trip_id: str = Path(..., min_length=1),
    gateway: TripGateway = Depends(deps.get_gateway),
):
    try:
        return await gateway.get_trip(trip_id)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/{trip_id}", response_model=trip_schemas.TripView, tags=trip_tags)
async def update_trip(
    trip_in: trip_schemas.TripUpdate,
    trip_id: str = Path(..., min_length=1),
    gateway: TripGateway = Depends(deps.get_gateway),
):
    """
    Update trip metadata. Owner only; omitted or null fields are left untouched.
    """
    try:
        return await gateway.update_trip(trip_id, trip_in)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT, tags=trip_tags)
async def delete_trip(
    trip_id: str = Path(..., min_length=1),
    gateway: TripGateway = Depends(deps.get_gateway),
):
    """
    Delete a trip with its places, access records and outstanding invites. Owner only.
    """
    try:
        await gateway.delete_trip(trip_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


# === Places within a trip ===
@router.get("/{trip_id}/places", response_model=List[place_schemas.Place], tags=place_tags)
async def list_places(
    trip_id: str = Path(..., min_length=1),
    gateway: TripGateway = Depends(deps.get_gateway),
):
    """
    Places of the trip ordered by `dayNumber`. Owner or collaborator.
    """
    try:
        return await gateway.list_places(trip_id)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "/{trip_id}/places",
    response_model=place_schemas.Place,
    status_code=status.HTTP_201_CREATED,
    tags=place_tags,
)
@limiter.limit("60/minute")
async def create_place(
    request: Request,  # For limiter state
    place_in: place_schemas.PlaceCreate,
    trip_id: str = Path(..., min_length=1),
    gateway: TripGateway = Depends(deps.get_gateway),
):
    try:
        return await gateway.create_place(trip_id, place_in)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/{trip_id}/places/{place_id}", response_model=place_schemas.Place, tags=place_tags)
async def update_place(
    place_in: place_schemas.PlaceUpdate,
    trip_id: str = Path(..., min_length=1),
    place_id: str = Path(..., min_length=1),
    gateway: TripGateway = Depends(deps.get_gateway),
):
    try:
        return await gateway.update_place(trip_id, place_id, place_in)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{trip_id}/places/{place_id}", status_code=status.HTTP_204_NO_CONTENT, tags=place_tags)
async def delete_place(
    trip_id: str = Path(..., min_length=1),
    place_id: str = Path(..., min_length=1),
    gateway: TripGateway = Depends(deps.get_gateway),
):
    try:
        await gateway.delete_place(trip_id, place_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc
