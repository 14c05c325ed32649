from typing import List

import cv2
from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import FileResponse

from review_api import schemas
from review_api.api import deps
from review_api.crud.base import AnnotationStore
from review_api.crud.crud_video import VideoLibrary
from review_api.services.metadata_service import process_video_metadata

router = APIRouter()


@router.get("", response_model=List[schemas.Video])
def read_videos(
    library: VideoLibrary = Depends(deps.get_video_library),
    store: AnnotationStore = Depends(deps.get_annotation_store),
):
    return library.get_multi(store)


@router.get("/{video_id}", response_model=schemas.Video)
def read_video(
    video_id: str,
    library: VideoLibrary = Depends(deps.get_video_library),
    store: AnnotationStore = Depends(deps.get_annotation_store),
):
    video = library.get(video_id, store)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")
    return video


@router.get("/{video_id}/metadata", response_model=schemas.VideoMetadata)
def read_video_metadata(
    video_id: str, library: VideoLibrary = Depends(deps.get_video_library)
):
    path = library.get_path(video_id)
    if path is None:
        raise HTTPException(status_code=404, detail="Video not found")
    return process_video_metadata(str(path))


@router.get("/{video_id}/stream")
def stream_video(video_id: str, library: VideoLibrary = Depends(deps.get_video_library)):
    path = library.get_path(video_id)
    if path is None:
        raise HTTPException(status_code=404, detail="Video not found")
    return FileResponse(path, filename=path.name)


@router.get("/{video_id}/frames/{frame_number}")
def get_video_frame(
    video_id: str,
    frame_number: int,
    library: VideoLibrary = Depends(deps.get_video_library),
):
    path = library.get_path(video_id)
    if path is None:
        raise HTTPException(status_code=404, detail="Video not found")

    cap = cv2.VideoCapture(str(path))
    try:
        if not cap.isOpened():
            raise HTTPException(status_code=422, detail="Could not open video file")

        total_frames = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        if frame_number < 0 or (total_frames > 0 and frame_number >= total_frames):
            raise HTTPException(status_code=400, detail="Invalid frame number")

        cap.set(cv2.CAP_PROP_POS_FRAMES, frame_number)
        ret, frame = cap.read()
        if not ret:
            raise HTTPException(status_code=404, detail="Frame could not be read")

        success, buffer = cv2.imencode(".jpg", frame)
        if not success:
            raise HTTPException(status_code=500, detail="Could not encode frame")
    finally:
        cap.release()

    return Response(
        content=buffer.tobytes(),
        media_type="image/jpeg",
        headers={"Cache-Control": "max-age=3600"},
    )
