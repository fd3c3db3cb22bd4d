"""Clean-up of cedula photos before text detection.

1. Decode image bytes
2. Crop to the card when a card-shaped quadrilateral is found
3. Deskew via Hough line detection
4. CLAHE lighting normalization
5. Scale so the long side sits within OCR-friendly bounds
6. Encode as JPEG

Each step degrades gracefully: if it fails, the previous image continues.
PDFs never reach this module.
"""

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# ID-1 card format is 85.60 x 53.98 mm
CARD_ASPECT_RATIO = 85.60 / 53.98
ASPECT_TOLERANCE = 0.25
MIN_CARD_AREA_RATIO = 0.2

MIN_LONG_SIDE = 1200
MAX_LONG_SIDE = 2400
MIN_SKEW_DEGREES = 3.0


def preprocess(image_bytes: bytes) -> bytes:
    """Run the clean-up pipeline. Returns the original bytes if decoding fails."""
    img = _decode(image_bytes)
    if img is None:
        logger.warning("preprocessing: could not decode image, returning original")
        return image_bytes

    img = _crop_card(img)
    img = _deskew(img)
    img = _normalize_lighting(img)
    img = _scale(img)
    return _encode(img, fallback=image_bytes)


def _decode(image_bytes: bytes) -> np.ndarray | None:
    arr = np.frombuffer(image_bytes, dtype=np.uint8)
    return cv2.imdecode(arr, cv2.IMREAD_COLOR)


def _looks_like_card(width: float, height: float) -> bool:
    if min(width, height) < 100:
        return False
    ratio = max(width, height) / min(width, height)
    return abs(ratio - CARD_ASPECT_RATIO) / CARD_ASPECT_RATIO <= ASPECT_TOLERANCE


def _crop_card(img: np.ndarray) -> np.ndarray:
    """Warp the largest card-shaped quadrilateral to a flat rectangle."""
    try:
        gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        edges = cv2.Canny(cv2.GaussianBlur(gray, (5, 5), 0), 50, 150)
        edges = cv2.dilate(edges, cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3)), iterations=1)

        contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        image_area = img.shape[0] * img.shape[1]

        for contour in sorted(contours, key=cv2.contourArea, reverse=True)[:5]:
            approx = cv2.approxPolyDP(contour, 0.02 * cv2.arcLength(contour, True), True)
            if len(approx) != 4:
                continue
            if cv2.contourArea(approx) / image_area < MIN_CARD_AREA_RATIO:
                continue

            corners = _order_corners(approx.reshape(4, 2).astype(np.float32))
            warped = _warp(img, corners)
            if warped is not None:
                logger.debug("preprocessing: card cropped to %dx%d", warped.shape[1], warped.shape[0])
                return warped

    except Exception as e:
        logger.warning("preprocessing: card detection failed: %s", e)

    return img


def _order_corners(pts: np.ndarray) -> np.ndarray:
    """Order as top-left, top-right, bottom-right, bottom-left."""
    sums = pts.sum(axis=1)
    diffs = np.diff(pts, axis=1).ravel()
    return np.array(
        [pts[np.argmin(sums)], pts[np.argmin(diffs)], pts[np.argmax(sums)], pts[np.argmax(diffs)]],
        dtype=np.float32,
    )


def _warp(img: np.ndarray, corners: np.ndarray) -> np.ndarray | None:
    tl, tr, br, bl = corners
    width = int(max(np.linalg.norm(br - bl), np.linalg.norm(tr - tl)))
    height = int(max(np.linalg.norm(tr - br), np.linalg.norm(tl - bl)))
    if not _looks_like_card(width, height):
        return None

    target = np.array([[0, 0], [width - 1, 0], [width - 1, height - 1], [0, height - 1]], dtype=np.float32)
    matrix = cv2.getPerspectiveTransform(corners, target)
    return cv2.warpPerspective(img, matrix, (width, height))


def _deskew(img: np.ndarray) -> np.ndarray:
    """Rotate back when text lines lean by more than a few degrees."""
    try:
        gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        edges = cv2.Canny(gray, 50, 150, apertureSize=3)
        lines = cv2.HoughLinesP(edges, 1, np.pi / 180, threshold=80, minLineLength=40, maxLineGap=10)
        if lines is None or len(lines) < 3:
            return img

        angles = []
        # (N, 1, 4) or (N, 4) depending on the OpenCV release
        for x1, y1, x2, y2 in lines.reshape(-1, 4):
            angle = float(np.degrees(np.arctan2(y2 - y1, x2 - x1)))
            # Text baselines only
            if abs(angle) < 30:
                angles.append(angle)
        if not angles:
            return img

        skew = float(np.median(angles))
        if abs(skew) < MIN_SKEW_DEGREES:
            return img

        logger.debug("preprocessing: deskewing by %.1f degrees", skew)
        h, w = img.shape[:2]
        matrix = cv2.getRotationMatrix2D((w // 2, h // 2), skew, 1.0)
        return cv2.warpAffine(img, matrix, (w, h), flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE)

    except Exception as e:
        logger.warning("preprocessing: deskew failed: %s", e)
        return img


def _normalize_lighting(img: np.ndarray) -> np.ndarray:
    """CLAHE on the L channel, evens out glare from laminated cards."""
    try:
        l_channel, a_channel, b_channel = cv2.split(cv2.cvtColor(img, cv2.COLOR_BGR2LAB))
        l_channel = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8)).apply(l_channel)
        return cv2.cvtColor(cv2.merge([l_channel, a_channel, b_channel]), cv2.COLOR_LAB2BGR)
    except Exception as e:
        logger.warning("preprocessing: CLAHE failed: %s", e)
        return img


def _scale(img: np.ndarray) -> np.ndarray:
    """Keep the long side within [MIN_LONG_SIDE, MAX_LONG_SIDE], preserving aspect."""
    h, w = img.shape[:2]
    long_side = max(h, w)
    if MIN_LONG_SIDE <= long_side <= MAX_LONG_SIDE:
        return img

    target = MIN_LONG_SIDE if long_side < MIN_LONG_SIDE else MAX_LONG_SIDE
    factor = target / long_side
    interpolation = cv2.INTER_CUBIC if factor > 1 else cv2.INTER_AREA
    return cv2.resize(img, (max(1, round(w * factor)), max(1, round(h * factor))), interpolation=interpolation)


def _encode(img: np.ndarray, fallback: bytes) -> bytes:
    try:
        success, buf = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, 95])
        if success:
            return buf.tobytes()
    except Exception as e:
        logger.warning("preprocessing: JPEG encode failed: %s", e)

    return fallback
