"""Media item routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status

from app.routes.dependencies import get_media_item_service
from app.schemas.error import FsmTransitionError, NoLeakNotFoundError, UpstreamServiceError
from app.schemas.media import CreateMediaItemRequest, MediaItem
from app.services.media_items import MediaItemService

router = APIRouter(tags=["Media"])


@router.post("/media", response_model=MediaItem, status_code=status.HTTP_201_CREATED)
async def create_media_item(
    payload: CreateMediaItemRequest,
    service: Annotated[MediaItemService, Depends(get_media_item_service)],
) -> MediaItem:
    return await service.create_item(payload)


@router.get(
    "/media/{itemId}",
    response_model=MediaItem,
    responses={404: {"model": NoLeakNotFoundError}},
)
async def get_media_item(
    item_id: Annotated[str, Path(alias="itemId")],
    service: Annotated[MediaItemService, Depends(get_media_item_service)],
) -> MediaItem:
    return await service.get_item(item_id)


@router.delete(
    "/media/{itemId}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": NoLeakNotFoundError}, 409: {"model": FsmTransitionError}},
)
async def delete_media_item(
    item_id: Annotated[str, Path(alias="itemId")],
    service: Annotated[MediaItemService, Depends(get_media_item_service)],
) -> Response:
    await service.delete_item(item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/assets/{assetId}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={502: {"model": UpstreamServiceError}},
)
async def delete_transcoder_asset(
    asset_id: Annotated[str, Path(alias="assetId")],
    service: Annotated[MediaItemService, Depends(get_media_item_service)],
) -> Response:
    await service.delete_asset(asset_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
