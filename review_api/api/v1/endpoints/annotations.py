import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from review_api import schemas
from review_api.api import deps
from review_api.crud.base import AnnotationNotFound, AnnotationStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{video_id}", response_model=List[schemas.Annotation])
def read_annotations(
    video_id: str = Depends(deps.get_known_video_id),
    store: AnnotationStore = Depends(deps.get_annotation_store),
):
    return store.list(video_id)


@router.post("/{video_id}", response_model=schemas.Annotation)
def create_annotation(
    annotation_in: schemas.AnnotationCreate,
    video_id: str = Depends(deps.get_known_video_id),
    store: AnnotationStore = Depends(deps.get_annotation_store),
):
    return store.create(video_id, annotation_in)


@router.put("/{video_id}/{annotation_id}", response_model=schemas.Annotation)
def update_annotation(
    annotation_id: str,
    annotation_update: schemas.AnnotationUpdate,
    video_id: str = Depends(deps.get_known_video_id),
    store: AnnotationStore = Depends(deps.get_annotation_store),
):
    try:
        return store.update(video_id, annotation_id, annotation_update)
    except AnnotationNotFound:
        raise HTTPException(status_code=404, detail="Annotation not found")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/{video_id}/{annotation_id}")
def delete_annotation(
    annotation_id: str,
    video_id: str = Depends(deps.get_known_video_id),
    store: AnnotationStore = Depends(deps.get_annotation_store),
):
    try:
        store.remove(video_id, annotation_id)
    except AnnotationNotFound:
        raise HTTPException(status_code=404, detail="Annotation not found")
    return {"message": "Annotation deleted successfully"}
