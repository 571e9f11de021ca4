# src/parapdf/placement.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple, Union

from PIL import Image, UnidentifiedImageError

from .exceptions import ImageError
from .models import Placement

logger = logging.getLogger("parapdf")


def compute_placement(page_width: float, page_height: float,
                      image_width: float, image_height: float) -> Placement:
    """
    Fit the image inside the page, keep its aspect ratio and center it.
    Every page of a run uses the same placement.
    """
    for name, value in (("page_width", page_width), ("page_height", page_height),
                        ("image_width", image_width), ("image_height", image_height)):
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")

    scale = min(page_width / image_width, page_height / image_height)
    width = image_width * scale
    height = image_height * scale
    return Placement(
        x=(page_width - width) / 2,
        y=(page_height - height) / 2,
        width=width,
        height=height,
        scale=scale,
    )


def read_image_size(image_path: Union[str, Path]) -> Tuple[int, int]:
    """Decode only the image header and return (width, height) in pixels."""
    try:
        with Image.open(image_path) as im:
            width, height = im.size
    except FileNotFoundError as e:
        raise ImageError(f"Input image does not exist, {image_path}") from e
    except (UnidentifiedImageError, OSError) as e:
        raise ImageError(f"Cannot decode input image {image_path}, {e}") from e

    logger.debug("Image %s is %dx%d", image_path, width, height)
    return width, height
