"""Tesseract text recognition through pytesseract."""

import os
from typing import Optional

import numpy as np
import pytesseract
from PIL import Image

from ..config.defaults import DEFAULT_PATHS, OCR_SETTINGS
from ..exceptions import RecognitionError, RecognizerInitError
from ..logging_config import get_logger
from .error_handler import global_error_handler
from .interfaces import TextRecognizerInterface

logger = get_logger("text_recognizer")


def normalize_recognized_text(text: str) -> str:
    """Trim and upper-case OCR output; the only cleanup applied before matching."""
    return (text or "").strip().upper()


def resolve_tessdata_dir(tessdata_dir: Optional[str] = None) -> Optional[str]:
    """Explicit tessdata directory, else ``./tessdata`` when it exists."""
    if tessdata_dir:
        return tessdata_dir
    local = os.path.abspath(DEFAULT_PATHS["tessdata_dir"])
    if os.path.isdir(local):
        return local
    return None


class TesseractRecognizer(TextRecognizerInterface):
    """Runs Tesseract over binary rasters with automatic page segmentation."""
    
    def __init__(self, tesseract_cmd: Optional[str] = None,
                 tessdata_dir: Optional[str] = None,
                 language: str = OCR_SETTINGS["language"],
                 page_segmentation_mode: int = OCR_SETTINGS["page_segmentation_mode"]):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        
        self.language = language
        self.tessdata_dir = resolve_tessdata_dir(tessdata_dir)
        self.config = f"--psm {page_segmentation_mode}"
        if self.tessdata_dir:
            self.config += f' --tessdata-dir "{self.tessdata_dir}"'
        
        global_error_handler.register_component("text_recognizer")
        
        try:
            self.version = str(pytesseract.get_tesseract_version())
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            raise RecognizerInitError(f"Tesseract is not available: {e}") from e
        
        try:
            available = pytesseract.get_languages(config=self.config)
        except (pytesseract.TesseractError, OSError) as e:
            raise RecognizerInitError(f"Could not list Tesseract languages: {e}") from e
        if language not in available:
            raise RecognizerInitError(
                f"Tesseract language data '{language}' not installed "
                f"(available: {', '.join(sorted(available)) or 'none'})"
            )
        
        logger.info(f"Tesseract {self.version} initialized - language: {language}, "
                    f"PSM: {page_segmentation_mode}, tessdata: {self.tessdata_dir or 'default'}")
    
    def recognize(self, binary: np.ndarray) -> str:
        if binary.size == 0:
            return ""
        
        image = Image.fromarray(np.ascontiguousarray(binary, dtype=np.uint8))
        try:
            return pytesseract.image_to_string(image, lang=self.language, config=self.config)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError,
                RuntimeError) as e:
            raise RecognitionError(f"Tesseract recognition failed: {e}") from e
