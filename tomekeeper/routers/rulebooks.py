"""Rulebook listing, detail and re-extraction REST endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from tomekeeper.config import get_settings
from tomekeeper.database import AsyncSessionLocal
from tomekeeper.errors import ExtractionError, RecordNotFoundError
from tomekeeper.ingest.pipeline import ItemPipeline
from tomekeeper.repositories import RulebookRepository
from tomekeeper.services.extractor import GeminiExtractor
from tomekeeper.services.uploader import HttpBlobUploader
from tomekeeper.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger("tomekeeper.routers.rulebooks")


def get_rulebook_repository() -> RulebookRepository:
    return RulebookRepository(AsyncSessionLocal)


def get_pipeline(rulebooks: RulebookRepository = Depends(get_rulebook_repository)) -> ItemPipeline:
    settings = get_settings()
    return ItemPipeline(rulebooks, HttpBlobUploader(settings), GeminiExtractor(settings), settings)


@router.get("/rulebooks", response_model=List[dict])
async def list_rulebooks(
    game_system: Optional[str] = None,
    category: Optional[str] = None,
    extracted: Optional[bool] = None,
    search: Optional[str] = None,
    rulebooks: RulebookRepository = Depends(get_rulebook_repository),
):
    records = await rulebooks.list(
        game_system=game_system, category=category, extracted=extracted, search=search,
    )
    return [r.to_dict() for r in records]


@router.get("/rulebooks/unextracted", response_model=List[dict])
async def list_unextracted(rulebooks: RulebookRepository = Depends(get_rulebook_repository)):
    return [r.to_dict() for r in await rulebooks.list_unextracted()]


@router.get("/rulebooks/{rulebook_id}")
async def get_rulebook(rulebook_id: str, rulebooks: RulebookRepository = Depends(get_rulebook_repository)):
    rulebook = await rulebooks.get(rulebook_id)
    if not rulebook:
        raise HTTPException(status_code=404, detail="Rulebook not found")
    return rulebook.to_dict()


@router.post("/rulebooks/{rulebook_id}/extract")
async def extract_rulebook(rulebook_id: str, pipeline: ItemPipeline = Depends(get_pipeline)):
    """Re-run extraction on a record left in the ``uploaded`` phase."""
    try:
        rulebook = await pipeline.extract_existing(rulebook_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Rulebook not found")
    except ExtractionError as exc:
        logger.warning("Re-extraction of %s failed: %s", rulebook_id, exc, extra={"rulebook_id": rulebook_id})
        raise HTTPException(status_code=502, detail=str(exc))
    return rulebook.to_dict()
