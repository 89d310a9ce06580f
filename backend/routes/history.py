"""History, favorites, collections and analytics."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from backend.deps import batch_tracker, collection_tracker, history_tracker
from ugcgen.analytics import AnalyticsData, calculate_analytics
from ugcgen.history import BatchTracker, CollectionTracker, HistoryItem, HistoryTracker, VideoCollection
from ugcgen.jobs.models import VideoSettings
from ugcgen.validation import validate_video_settings

router = APIRouter()


class HistoryCreateRequest(BaseModel):
    artifact_url: str
    source_text: str
    settings: Optional[VideoSettings] = None
    thumbnail: Optional[str] = None
    provider: Optional[str] = None
    audio_url: Optional[str] = None
    voice_id: Optional[str] = None
    voice_name: Optional[str] = None
    is_favorite: bool = False


class FavoriteResponse(BaseModel):
    success: bool = True
    is_favorite: bool


class CollectionCreateRequest(BaseModel):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


class CollectionUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

@router.get("/history", response_model=list[HistoryItem])
async def list_history(favorites: bool = False, tracker: HistoryTracker = Depends(history_tracker)):
    return tracker.list_favorites() if favorites else tracker.list_all()


@router.post("/history", response_model=HistoryItem, status_code=201)
async def add_history(body: HistoryCreateRequest, tracker: HistoryTracker = Depends(history_tracker)):
    validate_video_settings(body.settings)
    return tracker.append(HistoryItem(**body.model_dump()))


@router.get("/history/{item_id}", response_model=HistoryItem)
async def get_history_item(item_id: str, tracker: HistoryTracker = Depends(history_tracker)):
    item = tracker.get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Video not found: {item_id}")
    return item


@router.post("/history/{item_id}/favorite", response_model=FavoriteResponse)
async def toggle_favorite(item_id: str, tracker: HistoryTracker = Depends(history_tracker)):
    """Flip the favorite flag. Unknown ids report is_favorite=false and change nothing."""
    return FavoriteResponse(is_favorite=tracker.toggle_favorite(item_id))


@router.delete("/history/{item_id}")
async def delete_history_item(item_id: str, tracker: HistoryTracker = Depends(history_tracker)):
    if not tracker.remove(item_id):
        raise HTTPException(status_code=404, detail=f"Video not found: {item_id}")
    return {"success": True}


@router.delete("/history")
async def clear_history(tracker: HistoryTracker = Depends(history_tracker)):
    tracker.clear()
    return {"success": True}


@router.get("/analytics", response_model=AnalyticsData)
async def analytics(
    history: HistoryTracker = Depends(history_tracker),
    batches: BatchTracker = Depends(batch_tracker),
):
    return calculate_analytics(history.list_all(), batches.list_all())


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

def _require_collection(tracker: CollectionTracker, collection_id: str) -> VideoCollection:
    collection = tracker.get(collection_id)
    if collection is None:
        raise HTTPException(status_code=404, detail=f"Collection not found: {collection_id}")
    return collection


@router.get("/collections", response_model=list[VideoCollection])
async def list_collections(tracker: CollectionTracker = Depends(collection_tracker)):
    return tracker.list_all()


@router.post("/collections", response_model=VideoCollection, status_code=201)
async def create_collection(body: CollectionCreateRequest, tracker: CollectionTracker = Depends(collection_tracker)):
    try:
        return tracker.create(body.name, body.description, body.color, body.icon)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/collections/{collection_id}", response_model=VideoCollection)
async def get_collection(collection_id: str, tracker: CollectionTracker = Depends(collection_tracker)):
    return _require_collection(tracker, collection_id)


@router.patch("/collections/{collection_id}", response_model=VideoCollection)
async def update_collection(
    collection_id: str,
    body: CollectionUpdateRequest,
    tracker: CollectionTracker = Depends(collection_tracker),
):
    _require_collection(tracker, collection_id)
    tracker.update(collection_id, **body.model_dump(exclude_none=True))
    return _require_collection(tracker, collection_id)


@router.delete("/collections/{collection_id}")
async def delete_collection(collection_id: str, tracker: CollectionTracker = Depends(collection_tracker)):
    if not tracker.delete(collection_id):
        raise HTTPException(status_code=404, detail=f"Collection not found: {collection_id}")
    return {"success": True}


@router.get("/collections/{collection_id}/videos", response_model=list[HistoryItem])
async def collection_videos(
    collection_id: str,
    tracker: CollectionTracker = Depends(collection_tracker),
    history: HistoryTracker = Depends(history_tracker),
):
    _require_collection(tracker, collection_id)
    return tracker.videos_in(collection_id, history.list_all())


@router.post("/collections/{collection_id}/videos/{video_id}")
async def add_to_collection(
    collection_id: str,
    video_id: str,
    tracker: CollectionTracker = Depends(collection_tracker),
):
    if not tracker.add_video(collection_id, video_id):
        raise HTTPException(status_code=404, detail=f"Collection not found: {collection_id}")
    return {"success": True}


@router.delete("/collections/{collection_id}/videos/{video_id}")
async def remove_from_collection(
    collection_id: str,
    video_id: str,
    tracker: CollectionTracker = Depends(collection_tracker),
):
    if not tracker.remove_video(collection_id, video_id):
        raise HTTPException(status_code=404, detail=f"Collection not found: {collection_id}")
    return {"success": True}
