"""World listing and detail REST endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from tomekeeper.database import AsyncSessionLocal
from tomekeeper.repositories import WorldRepository

router = APIRouter()


def get_world_repository() -> WorldRepository:
    return WorldRepository(AsyncSessionLocal)


@router.get("/worlds", response_model=List[dict])
async def list_worlds(worlds: WorldRepository = Depends(get_world_repository)):
    return [w.to_dict() for w in await worlds.list()]


@router.get("/worlds/{world_id}")
async def get_world(world_id: str, worlds: WorldRepository = Depends(get_world_repository)):
    world = await worlds.get(world_id)
    if not world:
        raise HTTPException(status_code=404, detail="World not found")
    return world.to_dict()
