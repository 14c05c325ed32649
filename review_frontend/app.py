import logging
import os
import time

import streamlit as st

from review_frontend.components.timeline import format_timestamp
from review_frontend.components.video_player import VideoPlayer
from review_frontend.services.annotation_store import DEFAULT_API_URL, ReviewApiClient
from review_frontend.session import ReviewSession

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

st.set_page_config(layout="wide", page_title="Video Review Tool")

# Seconds between two playback ticks while playing
PLAYBACK_TICK = 0.2


def init_state():
    if "review_session" not in st.session_state:
        api = ReviewApiClient(DEFAULT_API_URL)
        session = ReviewSession(api)
        st.session_state.review_session = session
        st.session_state.player = VideoPlayer(api, session.clock)
        st.session_state.last_tick = None
        session.load_videos()
        st.session_state.player.load(session.selected_video)
    return st.session_state.review_session, st.session_state.player


def select_video(session, player, video):
    session.select_video(video)
    player.load(video)
    st.session_state.last_tick = None


def render_video_list(session, player):
    st.header("Videos")
    if st.button("Reload"):
        session.load_videos()

    if session.loading:
        st.info("Loading videos...")
        return
    if session.error:
        st.error(session.error)
        if st.button("Dismiss"):
            session.clear_error()
            st.rerun()

    if not session.videos:
        st.info("No videos found")
        return

    for video in session.videos:
        selected = session.selected_video is not None and session.selected_video.id == video.id
        label = f"{'▶ ' if selected else ''}Video {video.index}: {video.name}"
        if st.button(label, key=f"video_{video.id}", use_container_width=True):
            select_video(session, player, video)
            st.rerun()
        if video.annotation_count:
            st.caption(
                f"{video.annotation_count} annotations · {video.tag_count} tags · "
                f"avg rating {video.avg_rating:.1f}"
            )


def render_player(session, player):
    clock = session.clock
    frame_image = player.current_frame_image()
    if frame_image is not None:
        st.image(frame_image, use_container_width=True)
    else:
        st.info("Frame not available")

    col_frame, col_time = st.columns([3, 1])
    with col_frame:
        st.text(f"Frame: {clock.current_frame} / {clock.total_frames}")
    with col_time:
        st.text(f"{format_timestamp(clock.current_time)} / {format_timestamp(clock.duration)}")

    if clock.total_frames > 0:
        frame_idx = st.slider(
            "Frame",
            min_value=0,
            max_value=clock.total_frames,
            value=min(clock.current_frame, clock.total_frames),
            key=f"scrub_{session.selected_video.id}_{clock.current_frame}",
        )
        if frame_idx != clock.current_frame:
            clock.seek_to_frame(frame_idx)
            clock.flush()
            st.rerun()

    col_prev, col_play, col_next = st.columns(3)
    with col_prev:
        if st.button("⏮ Prev frame", use_container_width=True):
            clock.step_frame(-1)
            clock.flush()
            st.rerun()
    with col_play:
        if st.button("⏸ Pause" if clock.playing else "▶ Play", use_container_width=True):
            clock.toggle_play()
            st.session_state.last_tick = None
            st.rerun()
    with col_next:
        if st.button("Next frame ⏭", use_container_width=True):
            clock.step_frame(1)
            clock.flush()
            st.rerun()


def render_annotation_tools(session):
    clock = session.clock
    binder = session.binder
    frame_range = binder.frame_range
    video_key = session.selected_video.id

    st.subheader("Annotation")
    st.caption(
        f"Current: Frame {clock.current_frame} ({clock.current_time:.2f}s)  \n"
        f"Range: Frames {frame_range.start_frame}-{frame_range.end_frame}"
    )

    max_frame = max(clock.total_frames, frame_range.end_frame, 1)
    start, end = st.slider(
        "Frame range",
        min_value=0,
        max_value=max_frame,
        value=(min(frame_range.start_frame, max_frame), min(frame_range.end_frame, max_frame)),
    )
    if (start, end) != (frame_range.start_frame, frame_range.end_frame):
        binder.set_range(start, end)
        st.rerun()

    col_start, col_end = st.columns(2)
    with col_start:
        if st.button("Set start = current", use_container_width=True):
            binder.set_range(clock.current_frame, max(clock.current_frame, frame_range.end_frame))
            st.rerun()
    with col_end:
        if st.button("Set end = current", use_container_width=True):
            binder.set_range(min(frame_range.start_frame, clock.current_frame), clock.current_frame)
            st.rerun()

    session.loop.enabled = st.checkbox("Loop range while playing", value=session.loop.enabled)
    if session.loop.config_error:
        st.warning(session.loop.config_error)

    current = binder.current()
    range_key = f"{video_key}_{frame_range.start_frame}_{frame_range.end_frame}"

    rating = st.radio(
        "Rating",
        [1, 2, 3, 4, 5],
        index=binder.rating - 1,
        horizontal=True,
        key=f"rating_{range_key}_{binder.rating}",
    )
    if rating != binder.rating:
        binder.set_rating(rating)
        st.rerun()

    with st.form(key=f"tag_form_{range_key}", clear_on_submit=True):
        tag_input = st.text_input("Add tag...")
        if st.form_submit_button("Add"):
            binder.add_tag(tag_input)
            st.rerun()

    tags = binder.tags
    if tags:
        tag_cols = st.columns(min(len(tags), 4))
        for i, tag in enumerate(tags):
            with tag_cols[i % len(tag_cols)]:
                if st.button(f"{tag} ×", key=f"remove_{range_key}_{tag}"):
                    binder.remove_tag(tag)
                    st.rerun()

    notes = st.text_area("Notes", value=binder.notes, key=f"notes_{range_key}", height=100)
    if notes != binder.notes:
        binder.set_notes(notes)

    if current is not None and st.button("Clear annotation", use_container_width=True):
        binder.clear()
        st.rerun()


def render_annotation_list(session):
    annotations = session.annotations
    active = {a.id for a in session.binder.annotations_at(session.clock.current_frame)}

    st.subheader(f"All Annotations ({len(annotations)})")
    if not annotations:
        st.caption("No annotations yet")
        return

    for annotation in annotations:
        with st.container(border=True):
            marker = "● " if annotation.id in active else ""
            col_info, col_actions = st.columns([4, 1])
            with col_info:
                st.markdown(
                    f"{marker}**Frames {annotation.start_frame}-{annotation.end_frame}** "
                    f"{'★' * annotation.rating}{'☆' * (5 - annotation.rating)}"
                )
                if annotation.tags:
                    st.caption(" · ".join(annotation.tags))
                if annotation.notes:
                    st.caption(annotation.notes)
            with col_actions:
                if st.button("Go", key=f"goto_{annotation.id}"):
                    session.binder.set_range(annotation.start_frame, annotation.end_frame)
                    session.clock.seek_to_frame(annotation.start_frame)
                    session.clock.flush()
                    st.rerun()
                if st.button("×", key=f"delete_{annotation.id}"):
                    session.delete_annotation(annotation.id)
                    st.rerun()


def tick_playback(session, player):
    """Advance playback by the wall time elapsed since the previous run"""
    if not session.clock.playing:
        return
    now = time.monotonic()
    last_tick = st.session_state.last_tick
    st.session_state.last_tick = now
    if last_tick is not None:
        player.advance(now - last_tick)


def main():
    session, player = init_state()
    session.poll()
    tick_playback(session, player)

    st.title("Video Review Tool")

    with st.sidebar:
        render_video_list(session, player)

    if session.selected_video is None:
        st.info("Select a video to start")
        return

    col_player, col_tools = st.columns([2, 1])
    with col_player:
        render_player(session, player)
    with col_tools:
        render_annotation_tools(session)
        render_annotation_list(session)

    if session.clock.playing:
        time.sleep(PLAYBACK_TICK)
        st.rerun()


if __name__ == "__main__":
    main()
