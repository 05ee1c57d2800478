"""
Dominant colour extraction for the colour palette tool.

The image is scaled to fit a 600 px box, sampled with a fixed stride and
clustered with k-means. Results are the cluster centres rounded to whole RGB
components.
"""

import io
import math
from typing import List, Optional, Sequence

import numpy as np
from PIL import Image, UnidentifiedImageError
from sklearn.cluster import KMeans

from portfolio_tools.storage.adapters import ExtractedColor

MAX_IMAGE_SIZE = 600
PALETTE_SIZE = 5
MAX_SAMPLES = 12000
KMEANS_ITERATIONS = 10
SEED_CANDIDATES = 32

GREY = np.array([128.0, 128.0, 128.0])


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def rgb_to_hex(rgb: Sequence[float]) -> str:
    return "#" + "".join(f"{min(max(_round_half_up(c), 0), 255):02x}" for c in rgb)


def _seed_centroids(pixels: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """One random pixel, then for each further seed the farthest of a few random candidates."""
    centroids = [pixels[rng.integers(len(pixels))]]
    while len(centroids) < k:
        candidates = pixels[rng.integers(len(pixels), size=SEED_CANDIDATES)]
        offsets = candidates[:, np.newaxis, :] - np.asarray(centroids)[np.newaxis, :, :]
        nearest = np.linalg.norm(offsets, axis=2).min(axis=1)
        centroids.append(candidates[int(np.argmax(nearest))])
    return np.asarray(centroids)


def kmeans(pixels: np.ndarray, k: int = PALETTE_SIZE, iterations: int = KMEANS_ITERATIONS,
           rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Cluster *pixels* into *k* centres; an empty cluster collapses to mid grey."""
    pixels = np.asarray(pixels, dtype=np.float64).reshape(-1, 3)
    if len(pixels) < k:
        # Too few samples to cluster: each sample is its own centre.
        return np.vstack([pixels, np.tile(GREY, (k - len(pixels), 1))])

    rng = rng or np.random.default_rng()
    seeds = _seed_centroids(pixels, k, rng)

    model = KMeans(n_clusters=k, init=seeds, n_init=1, max_iter=iterations)
    labels = model.fit_predict(pixels)

    centers = model.cluster_centers_.copy()
    centers[np.bincount(labels, minlength=k) == 0] = GREY
    return centers


def sample_pixels(image: Image.Image, max_samples: int = MAX_SAMPLES) -> np.ndarray:
    pixels = np.asarray(image.convert("RGB")).reshape(-1, 3)
    step = max(1, math.ceil(len(pixels) / max_samples))
    return pixels[::step].astype(np.float64)


def _fit(image: Image.Image) -> Image.Image:
    scale = min(MAX_IMAGE_SIZE / image.width, MAX_IMAGE_SIZE / image.height, 1)
    if scale >= 1:
        return image
    size = (max(1, math.floor(image.width * scale)), max(1, math.floor(image.height * scale)))
    return image.resize(size, resample=Image.Resampling.BILINEAR)


def extract_palette(image_bytes: bytes, k: int = PALETTE_SIZE,
                    rng: Optional[np.random.Generator] = None) -> List[ExtractedColor]:
    """
    Extract *k* dominant colours from encoded image bytes.

    Raises:
        ValueError: the bytes are not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as source:
            source.load()
            image = _fit(source.convert("RGB"))
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Unable to decode image: {exc}") from exc

    centroids = kmeans(sample_pixels(image), k=k, rng=rng)
    colors = []
    for centroid in centroids:
        rounded = [_round_half_up(c) for c in centroid]
        colors.append(ExtractedColor(hex=rgb_to_hex(rounded), rgb=rounded))
    return colors
