"""
Halftone Shell - Imperative Shell

Handles file I/O, video decoding/encoding, preview windows and the per-frame
playback loop. Delegates every pixel decision to the functional core
(halftone_render_core.py, frame_sampler_core.py, image_convert_core.py).

This is the "shell" that wraps the functional "core":
- HalftoneSession: current source + parameters, re-renders on every change
- PlaybackScheduler: calls the renderer once per frame while playing
- render_image_file / render_video_file: end-to-end file rendering
"""

import dataclasses
import mimetypes
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

import cv2  # type: ignore
import yaml  # type: ignore
from PIL import Image, UnidentifiedImageError  # type: ignore

from halftone_types import (
    SourceFrame,
    HalftoneConfig,
    OutputSurface,
    InvalidFrameDimensions,
    DEFAULT_CONFIG,
    coerce_color,
    dict_to_config,
    validate_halftone_config
)
from halftone_render_core import render, build_cells, paint_cells
from image_convert_core import (
    pil_to_source_frame,
    cv2_to_source_frame,
    surface_to_pil,
    surface_to_cv2
)


DEFAULT_VIDEO_FPS = 30.0
COLOR_FIELDS = ('start_color', 'end_color')
CONFIG_FIELDS = frozenset(f.name for f in dataclasses.fields(HalftoneConfig))


# ============================================================================
# Per-Stage Frame Timing
# ============================================================================

# Stages of one halftone frame, in the order they run
RENDER_STAGES = ('decode', 'sample', 'paint', 'encode')


class RenderTimings:
    """Per-stage durations for halftone frames

    Every recorded duration is kept so the summary can show the slowest frame
    of a stage next to its average. `frames` counts frames whose render
    finished, which gives the effective frame rate of the pipeline.
    """
    def __init__(self):
        self.durations: Dict[str, List[float]] = {}
        self.frames = 0

    def record(self, stage: str, duration: float):
        self.durations.setdefault(stage, []).append(duration)

    def finish_frame(self):
        self.frames += 1

    def count(self, stage: str) -> int:
        return len(self.durations.get(stage, ()))

    def get_summary(self) -> Dict[str, Dict[str, float]]:
        """Per stage: count, total_ms, avg_ms and max_ms, in pipeline order"""
        stages = [s for s in RENDER_STAGES if s in self.durations]
        stages += sorted(s for s in self.durations if s not in RENDER_STAGES)

        summary = {}
        for stage in stages:
            values = self.durations[stage]
            total = sum(values)
            summary[stage] = {
                'count': len(values),
                'total_ms': total * 1000,
                'avg_ms': total / len(values) * 1000,
                'max_ms': max(values) * 1000
            }
        return summary

    def frames_per_second(self) -> float:
        """Frames finished per second of recorded stage time (0.0 if none)"""
        total = sum(sum(values) for values in self.durations.values())
        if self.frames == 0 or total <= 0:
            return 0.0
        return self.frames / total

    def print_summary(self, title: str = "Halftone Timing Summary"):
        print(f"\n{title}")
        print("-" * 60)
        for stage, stats in self.get_summary().items():
            print(f"  {stage:<10} {stats['count']:>6}x  avg {stats['avg_ms']:8.2f} ms  "
                  f"max {stats['max_ms']:8.2f} ms  total {stats['total_ms']:10.1f} ms")
        print(f"  {self.frames} frames, {self.frames_per_second():.1f} frames/s")

    def reset(self):
        self.durations.clear()
        self.frames = 0


@contextmanager
def time_stage(timings: Optional[RenderTimings], stage: str):
    """Time one pipeline stage into `timings`; does nothing when timings is None"""
    if timings is None:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        timings.record(stage, time.perf_counter() - start)


# ============================================================================
# File Loading (Imperative Shell)
# ============================================================================

def _media_type(path: str) -> Optional[str]:
    mime, _ = mimetypes.guess_type(str(path))
    return mime


def is_image_file(path: str) -> bool:
    """True if the file name maps to an image/* MIME type"""
    mime = _media_type(path)
    return mime is not None and mime.startswith('image/')


def is_video_file(path: str) -> bool:
    """True if the file name maps to a video/* MIME type"""
    mime = _media_type(path)
    return mime is not None and mime.startswith('video/')


def load_image_frame(image_path: str) -> SourceFrame:
    """Load an image file from disk as a SourceFrame

    Imperative shell: performs file I/O.

    Args:
        image_path: Path to any image format PIL can decode

    Returns:
        SourceFrame, transparency flattened onto black

    Raises:
        FileNotFoundError: If the file doesn't exist
        IOError: If the file can't be decoded
    """
    path = Path(image_path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    try:
        with Image.open(path) as img:
            img.load()
            return pil_to_source_frame(img)
    except (UnidentifiedImageError, OSError) as e:
        raise IOError(f"Failed to load image file: {e}")


def load_config_file(config_path: str, base: Optional[HalftoneConfig] = None) -> HalftoneConfig:
    """Load halftone parameters from a YAML file

    Imperative shell: performs file I/O, then delegates to dict_to_config.
    Keys missing from the file keep the value from `base`.

    Args:
        config_path: Path to YAML file
        base: Config supplying defaults (DEFAULT_CONFIG if None)

    Returns:
        Validated HalftoneConfig

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the YAML is not a mapping or holds invalid values
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping, got {type(data).__name__}")

    return dict_to_config(data, base=base or DEFAULT_CONFIG)


def read_video_properties(video_path: str) -> Tuple[int, int, float]:
    """Read (width, height, fps) from a video container

    Raises:
        FileNotFoundError: If the file doesn't exist
        IOError: If OpenCV can't open the stream
    """
    path = Path(video_path)
    if not path.exists():
        raise FileNotFoundError(f"Video file not found: {video_path}")

    cap = cv2.VideoCapture(str(path))
    try:
        if not cap.isOpened():
            raise IOError(f"Could not open video: {video_path}")
        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        fps = cap.get(cv2.CAP_PROP_FPS) or DEFAULT_VIDEO_FPS
        if fps <= 1e-3:
            fps = DEFAULT_VIDEO_FPS
        return width, height, fps
    finally:
        cap.release()


def iterate_video_frames(video_path: str, timings: Optional[RenderTimings] = None) -> Iterator[SourceFrame]:
    """Decode a video file frame by frame

    Imperative shell: holds an open cv2.VideoCapture until the generator is
    exhausted or closed. Reading and converting each frame is timed as the
    'decode' stage when `timings` is given.

    Yields:
        One SourceFrame per decoded frame

    Raises (when iteration starts):
        FileNotFoundError: If the file doesn't exist
        IOError: If OpenCV can't open the stream
    """
    path = Path(video_path)
    if not path.exists():
        raise FileNotFoundError(f"Video file not found: {video_path}")

    cap = cv2.VideoCapture(str(path))
    if not cap.isOpened():
        cap.release()
        raise IOError(f"Could not open video: {video_path}")

    try:
        while True:
            with time_stage(timings, 'decode'):
                ok, frame = cap.read()
                source = cv2_to_source_frame(frame) if ok else None
            if source is None:
                break
            yield source
    finally:
        cap.release()


# ============================================================================
# Session (re-render on parameter change)
# ============================================================================

class HalftoneSession:
    """Current source, current parameters and the surface they render to

    Every change of source or parameters re-renders immediately. A frame with
    invalid dimensions is reported once and leaves the surface as it was; the
    next legitimate frame or parameter change renders normally.
    """

    def __init__(
        self,
        config: HalftoneConfig = DEFAULT_CONFIG,
        surface: Optional[OutputSurface] = None,
        verbose: bool = True,
        timings: Optional[RenderTimings] = None
    ):
        validate_halftone_config(config)
        self.config = config
        self.surface = surface if surface is not None else OutputSurface()
        self.source: Optional[SourceFrame] = None
        self.last_error: Optional[InvalidFrameDimensions] = None
        self.render_count = 0
        self.verbose = verbose
        self.timings = timings

    def set_source(self, frame: SourceFrame) -> bool:
        """Replace the source and render it. Returns True if the surface was repainted."""
        self.source = frame
        return self.render()

    def update_config(self, **changes: Any) -> bool:
        """Change one or more parameters and re-render

        Colors may be passed as hex strings. Unknown keys and invalid values
        raise ValueError and leave the current config untouched.

        Returns:
            True if the surface was repainted
        """
        unknown = set(changes) - CONFIG_FIELDS
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        for field in COLOR_FIELDS:
            if field in changes:
                changes[field] = coerce_color(changes[field])

        config = dataclasses.replace(self.config, **changes)
        validate_halftone_config(config)
        self.config = config
        return self.render()

    def render(self) -> bool:
        """Render the current source with the current config

        The config was validated when it was set, so only the frame is checked
        here. Cells are built before the surface is touched.
        """
        if self.source is None:
            return False

        try:
            with time_stage(self.timings, 'sample'):
                cells = build_cells(self.source, self.config)
        except InvalidFrameDimensions as e:
            self.last_error = e
            if self.verbose:
                print(f"ERROR: {e}")
            return False

        with time_stage(self.timings, 'paint'):
            paint_cells(cells, self.source.width, self.source.height, self.surface)

        if self.timings is not None:
            self.timings.finish_frame()
        self.last_error = None
        self.render_count += 1
        return True


# ============================================================================
# Playback Scheduler (per-frame render loop)
# ============================================================================

class PlaybackScheduler:
    """Drives a HalftoneSession with frames from a playing source

    The scheduler owns play/pause/ended state; the renderer has none. Each
    tick() pulls one frame and renders it, but only while playing. Stopping
    the loop is simply not calling tick() any more.
    """

    def __init__(self, frames: Iterable[SourceFrame], session: HalftoneSession):
        self._frames = iter(frames)
        self.session = session
        self.is_playing = False
        self.has_ended = False
        self.frames_shown = 0
        self.frames_skipped = 0

    def play(self) -> None:
        if not self.has_ended:
            self.is_playing = True

    def pause(self) -> None:
        self.is_playing = False

    def toggle(self) -> bool:
        """Flip between playing and paused. Returns the new playing state."""
        if self.is_playing:
            self.pause()
        else:
            self.play()
        return self.is_playing

    def tick(self) -> bool:
        """Render the next frame if playing

        Returns:
            True if a frame was rendered onto the session surface
        """
        if not self.is_playing or self.has_ended:
            return False

        try:
            frame = next(self._frames)
        except StopIteration:
            self.has_ended = True
            self.is_playing = False
            return False

        if self.session.set_source(frame):
            self.frames_shown += 1
            return True

        self.frames_skipped += 1
        return False

    def run(
        self,
        on_frame: Optional[Callable[[OutputSurface], None]] = None,
        max_frames: Optional[int] = None
    ) -> int:
        """Tick until paused, ended, or max_frames rendered

        Args:
            on_frame: Called with the session surface after each rendered frame
            max_frames: Optional cap on frames rendered by this call

        Returns:
            Number of frames rendered by this call
        """
        rendered = 0
        while self.is_playing and not self.has_ended:
            if max_frames is not None and rendered >= max_frames:
                break
            if self.tick():
                rendered += 1
                if on_frame is not None:
                    on_frame(self.session.surface)
        return rendered

    def close(self) -> None:
        """Stop playback and release the frame source"""
        self.pause()
        close = getattr(self._frames, 'close', None)
        if close is not None:
            close()


# ============================================================================
# High-Level Rendering Functions
# ============================================================================

def render_image_file(
    input_path: str,
    output_path: str,
    config: HalftoneConfig = DEFAULT_CONFIG,
    verbose: bool = True
) -> OutputSurface:
    """Render an image file to a halftone image file

    Side effects:
    - Reads the input image
    - Writes the output image (format from its extension)

    Raises:
        FileNotFoundError: If the input doesn't exist
        IOError: If the input can't be decoded
        InvalidFrameDimensions: If the decoded image has no pixels
    """
    frame = load_image_frame(input_path)
    if verbose:
        print(f"Loaded image: {frame.width}x{frame.height}")

    surface = OutputSurface()
    render(frame, config, surface)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    surface_to_pil(surface).save(output_path)

    if verbose:
        print(f"✓ Halftone saved to: {output_path}")
    return surface


def render_video_file(
    input_path: str,
    output_path: str,
    config: HalftoneConfig = DEFAULT_CONFIG,
    preview: bool = False,
    verbose: bool = True,
    enable_timing: bool = False
) -> int:
    """Render every frame of a video file to an mp4 halftone video

    Side effects:
    - Decodes the input video
    - Encodes the output video (mp4v)
    - Optionally opens a preview window ('q' stops, space pauses)

    Returns:
        Number of frames written

    Raises:
        FileNotFoundError: If the input doesn't exist
        IOError: If the input can't be opened
        InvalidFrameDimensions: If the container reports no frame size
        ValueError: If config is invalid (raised before any output is written)
        RuntimeError: If the video writer can't be opened
    """
    # Fail on bad parameters before the output file is created
    timings = RenderTimings() if enable_timing else None
    session = HalftoneSession(config, verbose=verbose, timings=timings)

    width, height, fps = read_video_properties(input_path)
    if width <= 0 or height <= 0:
        raise InvalidFrameDimensions(width, height)

    if verbose:
        print("=" * 60)
        print("Rendering Halftone Video")
        print("=" * 60)
        print(f"Input: {input_path}")
        print(f"Output: {output_path}")
        print(f"Resolution: {width}x{height} @ {fps:.2f} FPS")
        print()

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fourcc = cv2.VideoWriter_fourcc(*"mp4v")
    writer = cv2.VideoWriter(str(output_path), fourcc, fps, (width, height))
    if not writer.isOpened():
        raise RuntimeError(f"Could not open VideoWriter for output: {output_path}")

    scheduler = PlaybackScheduler(iterate_video_frames(input_path, timings), session)
    window = "Halftone Preview"

    def write_frame(surface: OutputSurface) -> None:
        bgr = surface_to_cv2(surface)
        if surface.width != width or surface.height != height:
            if verbose:
                print(f"⚠️  Warning: frame size {surface.width}x{surface.height} "
                      f"differs from stream size, resizing")
            bgr = cv2.resize(bgr, (width, height), interpolation=cv2.INTER_NEAREST)
        with time_stage(timings, 'encode'):
            writer.write(bgr)

        if preview:
            cv2.imshow(window, bgr)
            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                scheduler.pause()
            elif key == ord(' '):
                # Block here until space is pressed again
                while cv2.waitKey(50) & 0xFF != ord(' '):
                    pass

        if verbose and scheduler.frames_shown % 100 == 0:
            print(f"Progress: {scheduler.frames_shown} frames")

    try:
        scheduler.play()
        scheduler.run(on_frame=write_frame)
    finally:
        scheduler.close()
        writer.release()
        if preview:
            cv2.destroyAllWindows()

    if verbose:
        print(f"Progress: 100.0% - {scheduler.frames_shown} frames processed")
        if scheduler.frames_skipped:
            print(f"⚠️  Warning: skipped {scheduler.frames_skipped} invalid frames")
        print(f"✓ Video saved to: {output_path}")
        if timings is not None:
            timings.print_summary()

    return scheduler.frames_shown
