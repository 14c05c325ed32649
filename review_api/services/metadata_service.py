import logging

import cv2

from review_api.schemas.schemas import VideoMetadata

logger = logging.getLogger(__name__)


def process_video_metadata(file_path: str) -> VideoMetadata:
    """
    Extract metadata from video file using OpenCV.

    Never raises: an unreadable file yields the default metadata
    (duration 0, 30 fps, 1920x1080) so callers can keep going.
    """
    cap = cv2.VideoCapture(file_path)
    try:
        if not cap.isOpened():
            raise ValueError("Could not open video file")

        fps = cap.get(cv2.CAP_PROP_FPS)
        total_frames = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

        defaults = VideoMetadata()
        if not fps or fps <= 0:
            fps = defaults.fps
        duration = total_frames / fps if total_frames > 0 else defaults.duration

        return VideoMetadata(
            duration=duration,
            fps=fps,
            width=width or defaults.width,
            height=height or defaults.height,
        )
    except Exception as e:
        logger.warning(f"Error processing video metadata for {file_path}: {e}")
        return VideoMetadata()
    finally:
        cap.release()
