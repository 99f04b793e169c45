import logging
import os
from functools import lru_cache
from typing import List, Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageFilter

logger = logging.getLogger(__name__)

CASCADE_FILE = "haarcascade_frontalface_default.xml"


@lru_cache(maxsize=1)
def _face_cascade() -> Optional["cv2.CascadeClassifier"]:
    cascade_root = getattr(cv2.data, "haarcascades", None)
    cascade_path = os.path.join(cascade_root, CASCADE_FILE) if cascade_root else None
    if not cascade_path or not os.path.exists(cascade_path):
        logger.warning("Haar cascade file is missing from OpenCV data; face blur disabled")
        return None
    classifier = cv2.CascadeClassifier(cascade_path)
    if classifier.empty():
        logger.warning("Failed to load Haar cascade; face blur disabled")
        return None
    return classifier


def detect_faces(image: Image.Image) -> List[Tuple[int, int, int, int]]:
    """Face boxes as (x, y, w, h), largest first."""
    classifier = _face_cascade()
    if classifier is None:
        return []
    gray = cv2.cvtColor(np.array(image.convert("RGB")), cv2.COLOR_RGB2GRAY)
    boxes = classifier.detectMultiScale(gray, scaleFactor=1.08, minNeighbors=4, minSize=(32, 32))
    if boxes is None or len(boxes) == 0:
        return []
    faces = [tuple(int(v) for v in box) for box in boxes]
    return sorted(faces, key=lambda f: f[2] * f[3], reverse=True)


def blur_faces(image: Image.Image, *, pad_frac: float = 0.15) -> Image.Image:
    """Copy of `image` with every detected face region gaussian-blurred."""
    faces = detect_faces(image)
    if not faces:
        return image
    out = image.copy()
    for x, y, w, h in faces:
        pad = int(max(w, h) * pad_frac)
        box = (max(0, x - pad), max(0, y - pad), min(image.width, x + w + pad), min(image.height, y + h + pad))
        region = out.crop(box)
        radius = max(4, max(w, h) // 6)
        out.paste(region.filter(ImageFilter.GaussianBlur(radius=radius)), box[:2])
    logger.info(f"Blurred {len(faces)} face region(s)")
    return out
