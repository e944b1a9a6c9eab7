"""Binarization of captured overlay rasters ahead of OCR.

The primary path is a saturation-aware grayscale conversion, Otsu (or a
manual) threshold, optional 4-neighbour morphological opening, and a
polarity fix that inverts any raster which ends up mostly white. When the
primary raster classifies as nothing, ``candidate_rasters`` lazily yields
per-channel and Sobel edge rasters as fallbacks.

Pixel-local stages are split into row bands over a thread pool; every band
is joined before a stage returns.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, List, Optional, Tuple

import cv2
import numpy as np

from ..config.defaults import PREPROCESSING_SETTINGS
from ..logging_config import get_logger

logger = get_logger("preprocessing")

WHITE = 255
BLACK = 0

# Bands smaller than this are not worth a thread hop
MIN_ROWS_PER_BAND = 32


def _as_rgb(raster: np.ndarray) -> np.ndarray:
    if raster.ndim != 3 or raster.shape[2] < 3:
        raise ValueError(f"Expected an HxWx3 or HxWx4 raster, got shape {raster.shape}")
    return raster[..., :3]


def _grayscale_rows(rgb: np.ndarray) -> np.ndarray:
    """Saturation-aware grayscale with contrast stretch for a block of rows.

    Integer arithmetic throughout: fixed-point luma ``(77R + 150G + 29B) >> 8``
    and a ``v + (v - 128) / 2`` stretch that truncates toward zero.
    """
    channels = rgb.astype(np.int32)
    r, g, b = channels[..., 0], channels[..., 1], channels[..., 2]
    max_channel = np.maximum(np.maximum(r, g), b)
    min_channel = np.minimum(np.minimum(r, g), b)

    tenths = PREPROCESSING_SETTINGS["saturation_spread_tenths"]
    saturated = (max_channel - min_channel) * 10 > max_channel * tenths

    luma = (77 * r + 150 * g + 29 * b) >> 8
    value = np.where(saturated, max_channel, luma)

    centered = value - 128
    stretched = value + np.sign(centered) * (np.abs(centered) // 2)
    return np.clip(stretched, 0, 255).astype(np.uint8)


def _erode_rows(src: np.ndarray, dst: np.ndarray, start: int, stop: int) -> None:
    keep = ((src[start:stop, 1:-1] > 127)
            & (src[start - 1:stop - 1, 1:-1] > 127)
            & (src[start + 1:stop + 1, 1:-1] > 127)
            & (src[start:stop, :-2] > 127)
            & (src[start:stop, 2:] > 127))
    dst[start:stop, 1:-1] = np.where(keep, WHITE, BLACK)


def _dilate_rows(src: np.ndarray, dst: np.ndarray, start: int, stop: int) -> None:
    grow = ((src[start:stop, 1:-1] > 127)
            | (src[start - 1:stop - 1, 1:-1] > 127)
            | (src[start + 1:stop + 1, 1:-1] > 127)
            | (src[start:stop, :-2] > 127)
            | (src[start:stop, 2:] > 127))
    dst[start:stop, 1:-1] = np.where(grow, WHITE, BLACK)


def calculate_otsu_threshold(gray: np.ndarray) -> int:
    """Otsu's threshold of an 8-bit grayscale raster.

    Maximizes ``w_bg * w_fg * (mean_bg - mean_fg) ** 2`` over 0..255; the
    lowest threshold wins ties and a histogram with a single occupied bin
    (or no pixels at all) yields 0.
    """
    if gray.size == 0:
        return 0

    histogram = np.bincount(gray.ravel(), minlength=256).astype(np.float64)
    levels = np.arange(256, dtype=np.float64)
    total = float(gray.size)

    weight_bg = np.cumsum(histogram)
    sum_bg = np.cumsum(histogram * levels)
    weight_fg = total - weight_bg
    valid = (weight_bg > 0) & (weight_fg > 0)

    mean_bg = np.zeros(256)
    mean_fg = np.zeros(256)
    np.divide(sum_bg, weight_bg, out=mean_bg, where=valid)
    np.divide(sum_bg[-1] - sum_bg, weight_fg, out=mean_fg, where=valid)

    variance = np.where(valid, weight_bg * weight_fg * (mean_bg - mean_fg) ** 2, 0.0)
    best = int(np.argmax(variance))
    if variance[best] <= 0.0:
        return 0
    return best


def binarize(gray: np.ndarray, threshold: int) -> np.ndarray:
    """Pixels at or above ``threshold`` become white."""
    return np.where(gray >= threshold, WHITE, BLACK).astype(np.uint8)


def white_pixel_count(binary: np.ndarray) -> int:
    return int(np.count_nonzero(binary > 127))


def normalize_polarity(binary: np.ndarray) -> np.ndarray:
    """Invert a raster whose white pixels are a strict majority."""
    if white_pixel_count(binary) > binary.size // 2:
        return (WHITE - binary).astype(np.uint8)
    return binary


def _freeze(raster: np.ndarray) -> np.ndarray:
    raster.setflags(write=False)
    return raster


class ImagePreprocessor:
    """Turns RGBA screen captures into black-on-white binary rasters."""

    def __init__(self, threshold: int = 0, enable_morph_open: bool = False,
                 workers: int = 4):
        if not 0 <= threshold <= 255:
            raise ValueError(f"Threshold must be within 0-255, got {threshold}")
        self.manual_threshold: Optional[int] = threshold or None
        self.enable_morph_open = enable_morph_open
        self.workers = max(1, int(workers))
        self._executor: Optional[ThreadPoolExecutor] = None
        if self.workers > 1:
            self._executor = ThreadPoolExecutor(max_workers=self.workers,
                                                thread_name_prefix="preprocess")

        mode = (f"Manual ({self.manual_threshold})" if self.manual_threshold
                else "Automatic (Otsu)")
        logger.info(f"ImagePreprocessor initialized - Threshold: {mode}, "
                    f"Morphological opening: {'enabled' if enable_morph_open else 'disabled'}, "
                    f"Workers: {self.workers}")

    def close(self) -> None:
        """Shut down the band worker pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _bands(self, start: int, stop: int) -> List[Tuple[int, int]]:
        rows = stop - start
        if rows <= 0:
            return []
        count = min(self.workers, max(1, rows // MIN_ROWS_PER_BAND))
        edges = np.linspace(start, stop, count + 1).astype(int)
        return [(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a]

    def _run_bands(self, work: Callable[[int, int], None], start: int, stop: int) -> None:
        bands = self._bands(start, stop)
        if self._executor is None or len(bands) <= 1:
            for band_start, band_stop in bands:
                work(band_start, band_stop)
            return

        futures = [self._executor.submit(work, a, b) for a, b in bands]
        # Join every band; result() re-raises a worker's exception here
        for future in futures:
            future.result()

    def to_grayscale(self, raster: np.ndarray) -> np.ndarray:
        """Saturation-aware, contrast-stretched grayscale of an RGB(A) raster."""
        rgb = _as_rgb(raster)
        height, width = rgb.shape[:2]
        gray = np.empty((height, width), dtype=np.uint8)

        def work(start: int, stop: int) -> None:
            gray[start:stop] = _grayscale_rows(rgb[start:stop])

        self._run_bands(work, 0, height)
        return gray

    def erode(self, binary: np.ndarray) -> np.ndarray:
        """4-neighbour erosion; border rows and columns stay black."""
        height, width = binary.shape[:2]
        eroded = np.zeros((height, width), dtype=np.uint8)
        if height < 3 or width < 3:
            return eroded
        self._run_bands(lambda a, b: _erode_rows(binary, eroded, a, b), 1, height - 1)
        return eroded

    def dilate(self, binary: np.ndarray) -> np.ndarray:
        """4-neighbour dilation; border rows and columns stay black."""
        height, width = binary.shape[:2]
        dilated = np.zeros((height, width), dtype=np.uint8)
        if height < 3 or width < 3:
            return dilated
        self._run_bands(lambda a, b: _dilate_rows(binary, dilated, a, b), 1, height - 1)
        return dilated

    def morphological_opening(self, binary: np.ndarray) -> np.ndarray:
        """Erosion followed by dilation, removing specks thinner than the cross."""
        return self.dilate(self.erode(binary))

    def calculate_threshold(self, gray: np.ndarray) -> int:
        """Binarization cutoff: the manual value, else Otsu's threshold."""
        if self.manual_threshold is not None:
            return self.manual_threshold
        return calculate_otsu_threshold(gray)

    def preprocess(self, raster: np.ndarray) -> np.ndarray:
        """Primary binarization of a captured raster."""
        gray = self.to_grayscale(raster)
        threshold = self.calculate_threshold(gray)
        binary = binarize(gray, threshold)

        if self.enable_morph_open:
            binary = self.morphological_opening(binary)

        return _freeze(normalize_polarity(binary))

    def channel_raster(self, raster: np.ndarray, channel: int) -> np.ndarray:
        """Binarize a single colour channel at the fixed cutoff."""
        rgb = _as_rgb(raster)
        binary = np.where(rgb[..., channel] > PREPROCESSING_SETTINGS["channel_cutoff"],
                          WHITE, BLACK).astype(np.uint8)
        if self.enable_morph_open:
            binary = self.morphological_opening(binary)
        return _freeze(normalize_polarity(binary))

    def edge_raster(self, raster: np.ndarray) -> np.ndarray:
        """Sobel gradient magnitude raster for text legible only by its edges."""
        rgb = _as_rgb(raster)
        height, width = rgb.shape[:2]
        edges = np.zeros((height, width), dtype=np.uint8)
        if height < 3 or width < 3:
            return _freeze(edges)

        channels = rgb.astype(np.float32)
        gray = (0.299 * channels[..., 0] + 0.587 * channels[..., 1]
                + 0.114 * channels[..., 2]).astype(np.uint8).astype(np.float32)
        grad_x = np.abs(cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3))
        grad_y = np.abs(cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3))

        def work(start: int, stop: int) -> None:
            gx = grad_x[start:stop, 1:-1]
            gy = grad_y[start:stop, 1:-1]
            magnitude = np.minimum(np.maximum(gx, gy) + np.minimum(gx, gy) / 2.0, 255.0)
            edges[start:stop, 1:-1] = np.where(
                magnitude.astype(np.uint8) > PREPROCESSING_SETTINGS["edge_cutoff"], WHITE, BLACK)

        self._run_bands(work, 1, height - 1)
        return _freeze(normalize_polarity(edges))

    def try_alternative_methods(self, raster: np.ndarray) -> List[np.ndarray]:
        """Red, green and blue channel rasters followed by the edge raster."""
        return [binary for _, binary in self._fallback_candidates(raster)]

    def _fallback_candidates(self, raster: np.ndarray) -> Iterator[Tuple[str, np.ndarray]]:
        names = PREPROCESSING_SETTINGS["fallback_strategies"]
        for channel, name in enumerate(names[:3]):
            yield name, self.channel_raster(raster, channel)
        yield names[3], self.edge_raster(raster)

    def candidate_rasters(self, raster: np.ndarray,
                          include_fallbacks: bool = True) -> Iterator[Tuple[str, np.ndarray]]:
        """Yield ``(strategy, binary)`` pairs, primary first.

        Fallback rasters are only computed when the consumer asks for them.
        """
        yield "primary", self.preprocess(raster)
        if include_fallbacks:
            yield from self._fallback_candidates(raster)
