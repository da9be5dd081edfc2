"""
Local OCR backend (PaddleOCR).

Alternative to the OCR.space cloud backend, selected with
OCR_BACKEND=paddle. PaddleOCR is an optional dependency (the "paddle"
extra) and is only imported when the engine is first used.

Recognized text boxes are clustered into rows by their vertical position
and each row is joined left to right, so a table row comes out as one
line ("Paracetamol 500mg Tab  Qty: 20  Total: 60.00") for the regex parser.
"""

from __future__ import annotations

import logging
import os
import tempfile
from typing import Dict, List, Optional

import numpy as np

from justbill.backends.base import OcrResult

logger = logging.getLogger(__name__)


# -------------------------
# Geometry helpers
# -------------------------
def _points(box) -> Optional[np.ndarray]:
    if box is None:
        return None
    try:
        arr = np.asarray(box, dtype=float)
    except (TypeError, ValueError):
        return None
    if arr.ndim != 2 or arr.shape[0] == 0 or arr.shape[1] < 2:
        return None
    return arr


def _top_y(box) -> float:
    pts = _points(box)
    return float(pts[:, 1].min()) if pts is not None else 0.0


def _left_x(box) -> float:
    pts = _points(box)
    return float(pts[:, 0].min()) if pts is not None else 0.0


def _height(box) -> float:
    pts = _points(box)
    if pts is None:
        return 0.0
    ys = pts[:, 1]
    return float(ys.max() - ys.min())


# -------------------------
# Normalize PaddleOCR output (single page result)
# -------------------------
def _normalize_page(page_res: Dict, page_number: int) -> List[Dict]:
    lines: List[Dict] = []

    if isinstance(page_res, dict) and "rec_texts" in page_res:
        texts = page_res.get("rec_texts", [])
        scores = page_res.get("rec_scores", [])
        boxes = page_res.get("rec_polys", [])

        for i, text in enumerate(texts):
            if not (text or "").strip():
                continue
            lines.append(
                {
                    "text": text.strip(),
                    "confidence": float(scores[i]) if i < len(scores) else 1.0,
                    "box": boxes[i] if i < len(boxes) else None,
                    "page": page_number,
                }
            )

    return lines


# -------------------------
# Row clustering (Y-axis), never across pages
# -------------------------
def _cluster_rows(lines: List[Dict]) -> List[List[Dict]]:
    if not lines:
        return []

    lines_sorted = sorted(lines, key=lambda l: (l.get("page", 0), _top_y(l.get("box"))))

    heights = [_height(l.get("box")) for l in lines_sorted]
    heights = [h for h in heights if h > 0]
    threshold = (sum(heights) / len(heights)) * 0.8 if heights else 15.0

    rows: List[List[Dict]] = []
    current: List[Dict] = []
    for line in lines_sorted:
        if current:
            prev = current[-1]
            same_page = line.get("page", 0) == prev.get("page", 0)
            same_row = abs(_top_y(line.get("box")) - _top_y(prev.get("box"))) <= threshold
            if not (same_page and same_row):
                rows.append(current)
                current = []
        current.append(line)

    if current:
        rows.append(current)
    return rows


def lines_to_text(lines: List[Dict]) -> str:
    """Join recognized boxes into reading-order text, one table row per line."""
    out: List[str] = []
    for row in _cluster_rows(lines):
        row_sorted = sorted(row, key=lambda l: _left_x(l.get("box")))
        out.append("  ".join(l.get("text", "") for l in row_sorted))
    return "\n".join(out)


def mean_confidence(lines: List[Dict]) -> float:
    """Mean recognition score on a 0-100 scale."""
    if not lines:
        return 0.0
    return float(np.mean([l.get("confidence", 0.0) for l in lines])) * 100.0


# -------------------------
# Engine
# -------------------------
class PaddleOcrEngine:
    """OCR backend running PaddleOCR in-process."""

    def __init__(self, lang: str = "en"):
        self.lang = lang
        self._ocr = None

    def _engine(self):
        if self._ocr is None:
            from paddleocr import PaddleOCR

            logger.info("Initializing PaddleOCR...")
            self._ocr = PaddleOCR(use_angle_cls=True, lang=self.lang)
        return self._ocr

    def recognize(self, data: bytes, filename: str) -> OcrResult:
        suffix = os.path.splitext(filename or "")[1] or ".png"
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
                tmp.write(data)
                tmp_path = tmp.name

            results = self._engine().predict(tmp_path)
            all_lines: List[Dict] = []
            for page_number, page_res in enumerate(results or []):
                if hasattr(page_res, "to_dict"):
                    page_res = page_res.to_dict()
                elif not isinstance(page_res, dict) and hasattr(page_res, "json"):
                    page_res = page_res.json.get("res", {})
                all_lines.extend(_normalize_page(page_res, page_number))
        except Exception as e:
            logger.error(f"PaddleOCR failed on {filename}: {e}", exc_info=True)
            return OcrResult(success=False, error=f"Local OCR failed: {e}")
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

        if not all_lines:
            return OcrResult(success=False, error="No text recognized")

        return OcrResult(success=True, text=lines_to_text(all_lines), confidence=mean_confidence(all_lines))
