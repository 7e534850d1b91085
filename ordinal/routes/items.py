"""Ordered item routes.

Lists are addressed by ``list_key``; positions inside a list are kept dense
by the sequencer, so clients only ever say where an item should go.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from ordinal.logic.sequenced_items import create_item, delete_item, get_item, list_items, update_item
from ordinal.models.items import ItemCreateModel, ItemModel, ItemUpdateModel

router = APIRouter()


@router.get("/lists/{list_key}/items", response_model=list[ItemModel])
def get_list_items(list_key: str, request: Request) -> list[dict]:
    request.state.page_title = f"List {list_key}"
    return list_items(list_key)


@router.post("/lists/{list_key}/items", response_model=ItemModel, status_code=status.HTTP_201_CREATED)
def post_list_item(list_key: str, payload: ItemCreateModel) -> dict:
    return create_item(list_key, payload.title, payload.position)


@router.get("/items/{item_id}", response_model=ItemModel)
def get_single_item(item_id: int, request: Request) -> dict:
    item = get_item(item_id)
    request.state.page_title = item["title"]
    return item


@router.patch("/items/{item_id}", response_model=ItemModel)
def patch_item(item_id: int, payload: ItemUpdateModel) -> dict:
    return update_item(
        item_id,
        title=payload.title,
        list_key=payload.list_key,
        position=payload.position,
    )


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_item(item_id: int) -> Response:
    delete_item(item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
