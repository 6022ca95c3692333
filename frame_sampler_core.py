"""
Frame Sampler - Functional Core

Pure functions that partition a SourceFrame into a uniform grid and compute
the average luminance of each cell.
No side effects: no printing, no file I/O, no logging.

Architecture: Leaf of the functional core, consumed by halftone_render_core.py
"""

from typing import Iterator, Tuple
import numpy as np  # type: ignore

from halftone_types import SourceFrame, InvalidFrameDimensions


# Rec. 601 luma weights, scaled to integers so that sums stay exact
LUMA_WEIGHTS = np.array([299, 587, 114], dtype=np.int64)
LUMA_WEIGHT_TOTAL = 1000
MAX_CHANNEL = 255

CellSample = Tuple[int, int, float]  # (cell_x, cell_y, luminance)


# ============================================================================
# Validation
# ============================================================================

def validate_frame_dimensions(width: int, height: int) -> None:
    """
    Reject frames that have no pixels.

    Args:
        width: Frame width in pixels
        height: Frame height in pixels

    Raises:
        InvalidFrameDimensions: If width <= 0 or height <= 0
    """
    if width <= 0 or height <= 0:
        raise InvalidFrameDimensions(width, height)


def _validate_pixel_buffer(source: SourceFrame) -> None:
    if source.pixels.dtype != np.uint8:
        raise ValueError(f"Pixel buffer must be uint8 RGBA, got {source.pixels.dtype}")
    expected = (source.height, source.width, 4)
    if source.pixels.shape != expected:
        raise ValueError(
            f"Pixel buffer shape {source.pixels.shape} does not match "
            f"frame dimensions {expected}"
        )


# ============================================================================
# Grid Geometry
# ============================================================================

def count_cells(width: int, height: int, grid_size: int) -> int:
    """
    Number of cells the grid produces, partial cells included.

    Examples:
        >>> count_cells(15, 15, 10)
        4
        >>> count_cells(20, 20, 10)
        4
    """
    columns = -(-width // grid_size)
    rows = -(-height // grid_size)
    return columns * rows


def iterate_cell_origins(width: int, height: int, grid_size: int) -> Iterator[Tuple[int, int]]:
    """
    Yield the top-left corner of every cell, row-major.

    Args:
        width: Frame width in pixels
        height: Frame height in pixels
        grid_size: Cell edge length in pixels

    Yields:
        (x, y) tuples, top-to-bottom then left-to-right
    """
    for y in range(0, height, grid_size):
        for x in range(0, width, grid_size):
            yield x, y


# ============================================================================
# Luminance
# ============================================================================

def calculate_cell_luminance(block: np.ndarray) -> float:
    """
    Mean luma of a block of RGB(A) pixels.

    Pure function - each pixel contributes 0.299 R + 0.587 G + 0.114 B with
    channels normalized to [0, 1]; alpha is ignored. Weighted sums are
    accumulated in integers, so a pure white block is exactly 1.0.

    Args:
        block: uint8 array of shape (h, w, 3) or (h, w, 4), h and w > 0

    Returns:
        Mean luminance from 0.0 to 1.0

    Examples:
        >>> white = np.full((4, 4, 4), 255, dtype=np.uint8)
        >>> calculate_cell_luminance(white)
        1.0
    """
    rgb = block[:, :, :3].astype(np.int64)
    weighted_sum = int((rgb * LUMA_WEIGHTS).sum())
    samples = block.shape[0] * block.shape[1]
    return weighted_sum / (LUMA_WEIGHT_TOTAL * MAX_CHANNEL * samples)


# ============================================================================
# Sampling
# ============================================================================

def _iterate_samples(source: SourceFrame, grid_size: int) -> Iterator[CellSample]:
    pixels = source.pixels
    for x, y in iterate_cell_origins(source.width, source.height, grid_size):
        # Slicing clips partial cells at the right/bottom edges
        block = pixels[y:y + grid_size, x:x + grid_size]
        yield x, y, calculate_cell_luminance(block)


def sample(source: SourceFrame, grid_size: int) -> Iterator[CellSample]:
    """
    Sample a frame into per-cell luminance values.

    Dimensions are checked when this is called, not when the first cell is
    pulled, so a bad frame never produces a partial sequence. The returned
    iterator is lazy and single-use; call sample() again for a fresh one.

    Args:
        source: Frame to sample
        grid_size: Cell edge length in pixels

    Returns:
        Iterator of (cell_x, cell_y, luminance), row-major

    Raises:
        InvalidFrameDimensions: If the frame width or height is <= 0
        ValueError: If grid_size < 1, or the pixel buffer is not uint8 or
            doesn't match the frame

    Examples:
        >>> frame = SourceFrame(20, 20, np.full((20, 20, 4), 255, dtype=np.uint8))
        >>> list(sample(frame, 10))[0]
        (0, 0, 1.0)
    """
    validate_frame_dimensions(source.width, source.height)
    if grid_size < 1:
        raise ValueError(f"Grid size must be positive, got {grid_size}")
    _validate_pixel_buffer(source)
    return _iterate_samples(source, grid_size)
