"""
Halftone Rendering Core - Pure Functions

Turns sampled cell luminance into dots: radius mapping, gradient color
interpolation and disk rasterization. These functions have NO side effects
beyond writing into the destination surface they are handed, and depend only
on their input parameters.

Functional Core Design:
- Deterministic: identical (source, config) always paints identical pixels
- No timers, loops or state between calls - the caller decides when to render
- Later dots overwrite earlier ones; there is no blending

Used by: halftone_shell.py (sessions, playback scheduler, file rendering)
"""

import math
from typing import Iterable, Iterator, List, Tuple
import numpy as np  # type: ignore

from halftone_types import (
    SourceFrame,
    HalftoneConfig,
    Cell,
    OutputSurface,
    RGBColor,
    validate_halftone_config
)
from frame_sampler_core import sample, validate_frame_dimensions


# ============================================================================
# Dot Geometry
# ============================================================================

def calculate_dot_radius(luminance: float, grid_size: int, dot_scale: float) -> float:
    """Pure function: Map cell luminance to dot radius

    Args:
        luminance: Mean cell luminance (0.0-1.0)
        grid_size: Cell edge length in pixels
        dot_scale: Radius multiplier (0.1-2.0)

    Returns:
        Radius in pixels; 0.0 for a black cell, grid_size / 2 * dot_scale for white
    """
    return luminance * grid_size * 0.5 * dot_scale


# ============================================================================
# Gradient Color Calculations
# ============================================================================

def calculate_gradient_position(
    x: float,
    y: float,
    width: int,
    height: int,
    angle_degrees: float
) -> float:
    """Project a point onto the gradient axis and normalize it

    The axis direction is (cos a, sin a), 0 degrees pointing along +x and
    angles turning clockwise in screen coordinates. The projection is divided
    by (width * cos a + height * sin a). That denominator shrinks towards zero
    or goes negative for some angles, which makes the result leave [0, 1];
    callers clamp the resulting color, not the position.

    Args:
        x: Cell left edge in pixels
        y: Cell top edge in pixels
        width: Frame width in pixels
        height: Frame height in pixels
        angle_degrees: Gradient angle in degrees

    Returns:
        Normalized position t; 0.0 when the denominator is exactly zero
    """
    angle = math.radians(angle_degrees)
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)

    denominator = width * cos_a + height * sin_a
    if denominator == 0:
        return 0.0
    return (x * cos_a + y * sin_a) / denominator


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def interpolate_color(start: RGBColor, end: RGBColor, t: float) -> RGBColor:
    """Pure function: Linear per-channel interpolation between two RGB colors

    Each channel is round(start + t * (end - start)) with halves rounded up,
    then clamped to 0-255 since t may fall outside [0, 1].

    Args:
        start: Color at t = 0
        end: Color at t = 1
        t: Interpolation position

    Returns:
        Interpolated RGB tuple

    Examples:
        >>> interpolate_color((0, 0, 0), (255, 255, 255), 0.5)
        (128, 128, 128)
    """
    return tuple(
        min(255, max(0, _round_half_up(s + t * (e - s))))
        for s, e in zip(start, end)
    )


def calculate_cell_color(
    x: int,
    y: int,
    width: int,
    height: int,
    config: HalftoneConfig
) -> RGBColor:
    """Fill color for the cell whose top-left is (x, y)

    Args:
        x: Cell left edge
        y: Cell top edge
        width: Frame width
        height: Frame height
        config: Halftone parameters

    Returns:
        config.start_color for flat fills, otherwise the gradient color
    """
    if not config.use_gradient:
        return tuple(config.start_color)

    t = calculate_gradient_position(x, y, width, height, config.gradient_angle)
    return interpolate_color(config.start_color, config.end_color, t)


# ============================================================================
# Cell Construction
# ============================================================================

def iterate_cells(source: SourceFrame, config: HalftoneConfig) -> Iterator[Cell]:
    """Sample the frame and turn every cell into a drawing command

    Raises:
        InvalidFrameDimensions: If the frame has no pixels (raised on call)
    """
    samples = sample(source, config.grid_size)
    return (
        Cell(
            x=x,
            y=y,
            luminance=luminance,
            radius=calculate_dot_radius(luminance, config.grid_size, config.dot_scale),
            color=calculate_cell_color(x, y, source.width, source.height, config),
            grid_size=config.grid_size
        )
        for x, y, luminance in samples
    )


def build_cells(source: SourceFrame, config: HalftoneConfig) -> List[Cell]:
    """List of drawing commands for a frame, row-major"""
    return list(iterate_cells(source, config))


# ============================================================================
# Rasterization
# ============================================================================

def paint_disk(
    pixels: np.ndarray,
    center: Tuple[float, float],
    radius: float,
    color: RGBColor
) -> None:
    """Paint a filled, opaque disk onto an RGBA buffer

    Modifies pixels in-place. A pixel is covered when its center
    (px + 0.5, py + 0.5) lies within `radius` of `center`. Parts of the disk
    outside the buffer are clipped. Zero or negative radius paints nothing.

    Args:
        pixels: RGBA uint8 array (height, width, 4) - modified in-place
        center: (cx, cy) in pixel coordinates
        radius: Disk radius in pixels
        color: RGB fill color, written with alpha 255
    """
    if radius <= 0:
        return

    height, width = pixels.shape[:2]
    cx, cy = center

    x0 = max(int(math.floor(cx - radius)), 0)
    x1 = min(int(math.ceil(cx + radius)), width)
    y0 = max(int(math.floor(cy - radius)), 0)
    y1 = min(int(math.ceil(cy + radius)), height)
    if x0 >= x1 or y0 >= y1:
        return

    dx = np.arange(x0, x1, dtype=np.float64) + 0.5 - cx
    dy = np.arange(y0, y1, dtype=np.float64) + 0.5 - cy
    mask = dx[np.newaxis, :] ** 2 + dy[:, np.newaxis] ** 2 <= radius * radius

    region = pixels[y0:y1, x0:x1]
    region[mask] = (color[0], color[1], color[2], 255)


def paint_cells(cells: Iterable[Cell], width: int, height: int, destination: OutputSurface) -> None:
    """Clear destination to black at width x height and paint each cell's disk

    Cells are painted in the order given, so later cells overwrite earlier ones.
    The caller is responsible for having validated the frame the cells came from.
    """
    destination.reset(width, height)
    for cell in cells:
        paint_disk(destination.pixels, cell.center, cell.radius, cell.color)


# ============================================================================
# Render Entry Point
# ============================================================================

def render(source: SourceFrame, config: HalftoneConfig, destination: OutputSurface) -> None:
    """Repaint destination with the halftone version of source

    The destination is resized to the source dimensions, cleared to opaque
    black and then one disk per cell is painted in row-major order. All
    validation happens before the destination is touched, so a failed call
    leaves it exactly as it was.

    Args:
        source: Frame to render
        config: Halftone parameters
        destination: Caller-owned surface - modified in-place

    Raises:
        InvalidFrameDimensions: If source width or height is <= 0
        ValueError: If config is out of range or the pixel buffer is malformed
    """
    validate_frame_dimensions(source.width, source.height)
    validate_halftone_config(config)
    cells = iterate_cells(source, config)
    paint_cells(cells, source.width, source.height, destination)


def render_to_surface(source: SourceFrame, config: HalftoneConfig) -> OutputSurface:
    """Render into a freshly allocated surface"""
    surface = OutputSurface()
    render(source, config, surface)
    return surface
