#!/usr/bin/env python3
"""
OCR engine wrapper
Reads the text off an uploaded flyer image with Tesseract
"""

import logging
import re
from typing import Iterable, Optional

import pytesseract
from PIL import Image, UnidentifiedImageError

from scripts.env_config import get_app_config

logger = logging.getLogger(__name__)


class OcrError(RuntimeError):
    """The OCR engine could not produce text for an image"""


def _clean_ocr_text(text: str) -> str:
    """Trim trailing spaces per line and collapse runs of blank lines"""
    lines = [line.rstrip() for line in text.replace('\r\n', '\n').split('\n')]
    cleaned = '\n'.join(lines)
    cleaned = re.sub(r'\n{3,}', '\n\n', cleaned)
    return cleaned.strip()


def _average_confidence(data: dict) -> float:
    confidences = []
    for conf in data.get('conf', []):
        try:
            value = float(conf)
        except (TypeError, ValueError):
            continue
        if value > 0:
            confidences.append(value)
    return sum(confidences) / len(confidences) if confidences else 0.0


def extract_text_from_image(image_path: str, psm_modes: Optional[Iterable[int]] = None) -> str:
    """
    Extract text using Tesseract, trying several page segmentation modes.

    The result with the highest average word confidence wins.

    Raises:
        OcrError: the image cannot be opened, Tesseract is missing, or no
            mode produced any text
    """
    app_config = get_app_config()
    if app_config['tesseract_cmd']:
        pytesseract.pytesseract.tesseract_cmd = app_config['tesseract_cmd']
    psm_modes = list(psm_modes or app_config['ocr_psm_modes'])

    try:
        image = Image.open(image_path)
        image.load()
    except (OSError, UnidentifiedImageError) as e:
        raise OcrError(f'Could not read image: {e}') from e

    if image.mode not in ('L', 'RGB'):
        image = image.convert('RGB')

    best_text = ''
    best_confidence = -1.0

    for psm in psm_modes:
        try:
            data = pytesseract.image_to_data(image, config=f'--psm {psm}', output_type=pytesseract.Output.DICT)
            text = _clean_ocr_text(pytesseract.image_to_string(image, config=f'--psm {psm}'))
        except pytesseract.TesseractNotFoundError as e:
            raise OcrError('Tesseract is not installed or not on PATH') from e
        except pytesseract.TesseractError as e:
            logger.warning(f"PSM {psm} failed: {e}")
            continue

        confidence = _average_confidence(data)
        logger.info(f"PSM {psm}: confidence={confidence:.1f}, text_length={len(text)}")
        if text and confidence > best_confidence:
            best_text = text
            best_confidence = confidence

    if not best_text:
        raise OcrError('No text found in image')

    return best_text
