"""Payload models for ordered item routes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ItemCreateModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    position: int | None = None


class ItemUpdateModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    list_key: str | None = Field(default=None, min_length=1)
    position: int | None = None


class ItemModel(BaseModel):
    id: int
    title: str
    list_key: str
    position: int


__all__ = ["ItemCreateModel", "ItemUpdateModel", "ItemModel"]
