import os

import cv2
import numpy as np

from utils.errors import ConfigurationError


def load_image_gray(path):
    """Load an image as single-channel uint8."""
    img = cv2.imread(path, cv2.IMREAD_GRAYSCALE)
    if img is None:
        raise FileNotFoundError(f"Image not found: {path} (CWD={os.getcwd()})")
    return img


def resolve_radius(image_shape, radius=None):
    """Requested radius capped at the shorter image edge; defaults to that edge."""
    min_edge = int(min(image_shape[0], image_shape[1]))
    if radius is None:
        radius = min_edge
    if radius <= 0:
        raise ConfigurationError(f"radius must be > 0, got {radius}")
    return int(min(radius, min_edge))


def square_crop(img):
    """Centre crop to the largest square."""
    h, w = img.shape[:2]
    m = min(h, w)
    top, left = (h - m) // 2, (w - m) // 2
    return img[top:top + m, left:left + m]


def circle_mask(size, radius):
    """1 inside the disc of `radius` centred in a size x size grid, 0 outside."""
    yy, xx = np.mgrid[0:size, 0:size]
    c = (size - 1) / 2.0
    return (((yy - c) ** 2 + (xx - c) ** 2) <= radius * radius).astype(np.float32)


def preprocess_image(img_gray_u8, radius, invert=True):
    """
    Turn a grayscale image into the darkness field the planner consumes.

    Args:
        img_gray_u8 (np.ndarray): Grayscale uint8 image, any aspect ratio.
        radius (int): Disc radius R; output is (2R+1) x (2R+1).
        invert (bool): If True, dark source pixels become high darkness.

    Returns:
        np.ndarray: float32 in [0, 1], zero outside the disc.
    """
    if img_gray_u8.ndim == 3:
        img_gray_u8 = cv2.cvtColor(img_gray_u8, cv2.COLOR_BGR2GRAY)
    size = 2 * int(radius) + 1
    img = square_crop(img_gray_u8)
    img = cv2.resize(img, (size, size), interpolation=cv2.INTER_NEAREST)

    f = img.astype(np.float32) / 255.0
    if invert:
        f = 1.0 - f
    f *= circle_mask(size, radius)
    return np.clip(f, 0.0, 1.0).astype(np.float32)
