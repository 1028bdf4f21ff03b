"""
OCR adapter backed by EasyOCR.

Wraps the recognizer behind a small contract: given image bytes and a
language code, return the recognized text and a 0-100 confidence,
reporting progress along the way.
"""
import io
import logging
import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import cv2
import easyocr
import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import RecognitionError, ValidationError
from .models import normalize_language

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg"}
MAX_IMAGE_SIZE = 10 * 1024 * 1024  # 10MB

# Recognizer language code -> EasyOCR language list
EASYOCR_LANGUAGES: Dict[str, List[str]] = {
    "eng": ["en"],
    "hin": ["hi", "en"],
    "mar": ["mr", "en"],
}

ProgressCallback = Callable[[int], None]


@dataclass
class OCRResult:
    text: str
    confidence: int


def validate_upload(
    filename: str,
    data: bytes,
    allowed_extensions=ALLOWED_IMAGE_EXTENSIONS,
    max_size: int = MAX_IMAGE_SIZE,
) -> None:
    """
    Check an uploaded card image before recognition.

    Args:
        filename: Original file name, used for the extension check
        data: Raw file contents
        allowed_extensions: Accepted lower-case extensions
        max_size: Maximum size in bytes

    Raises:
        ValidationError: if the file is not an acceptable image
    """
    extension = filename.rsplit(".", 1)[1].lower() if filename and "." in filename else ""
    if extension not in allowed_extensions:
        raise ValidationError("Please upload a PNG, JPG, or JPEG image.")

    if not data:
        raise ValidationError("Uploaded file is empty.")

    if len(data) > max_size:
        raise ValidationError(f"File size must be less than {max_size // (1024 * 1024)}MB.")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValidationError("Uploaded file is not a valid image.") from e


class OCRExtractor:
    """OCR extractor using EasyOCR, one reader per language."""

    def __init__(self, gpu: bool = False, model_dir: str = "./models"):
        """
        Initialize OCR extractor.

        Readers are created lazily on first use of a language since
        loading the models is slow.

        Args:
            gpu: Use GPU for OCR
            model_dir: Directory for model storage
        """
        self.gpu = gpu
        self.model_dir = model_dir
        self._readers: Dict[str, easyocr.Reader] = {}

    def _get_reader(self, language: str) -> easyocr.Reader:
        if language not in self._readers:
            os.makedirs(self.model_dir, exist_ok=True)
            languages = EASYOCR_LANGUAGES[language]
            logger.info(f"Initializing EasyOCR with languages: {languages}")
            self._readers[language] = easyocr.Reader(
                lang_list=languages,
                gpu=self.gpu,
                model_storage_directory=self.model_dir,
                download_enabled=True,
                verbose=False,
            )
        return self._readers[language]

    def _preprocess_image(self, data: bytes) -> np.ndarray:
        """Decode the image, bring it into a readable width and convert to grayscale."""
        buffer = np.frombuffer(data, dtype=np.uint8)
        img = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        if img is None:
            raise ValueError("Cannot decode image")

        h, w = img.shape[:2]
        target_width = 1600
        if w < target_width:
            scale = target_width / w
            img = cv2.resize(img, (target_width, int(h * scale)), interpolation=cv2.INTER_CUBIC)
        elif w > 2400:
            scale = 2400 / w
            img = cv2.resize(img, (int(w * scale), int(h * scale)), interpolation=cv2.INTER_AREA)

        logger.debug(f"Resized from {w}x{h} to {img.shape[1]}x{img.shape[0]}")
        return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)

    def recognize(
        self,
        data: bytes,
        language: str = "eng",
        progress_callback: Optional[ProgressCallback] = None,
    ) -> OCRResult:
        """
        Recognize the text on a card image.

        Args:
            data: Encoded image bytes
            language: Recognizer language code (eng, hin, mar)
            progress_callback: Called with non-decreasing percentages 0-100

        Returns:
            OCRResult with lines joined top to bottom

        Raises:
            RecognitionError: if the image cannot be read or OCR fails
        """
        language = normalize_language(language)
        report = progress_callback or (lambda value: None)

        try:
            report(0)
            reader = self._get_reader(language)
            report(10)

            img = self._preprocess_image(data)
            report(30)

            results = reader.readtext(img, detail=1, paragraph=False)
            report(90)
        except Exception as e:
            logger.error(f"OCR extraction error: {e}", exc_info=True)
            raise RecognitionError("Failed to process the business card. Please try again.") from e

        # Sort by top-left Y coordinate so lines read top to bottom
        results.sort(key=lambda r: r[0][0][1])

        lines = []
        confidences = []
        for bbox, text, confidence in results:
            text = text.strip()
            if text:
                lines.append(text)
                confidences.append(confidence)

        # Longer text weighs more in the overall confidence
        total_weight = sum(len(line) for line in lines)
        if total_weight:
            weighted = sum(c * len(line) for c, line in zip(confidences, lines)) / total_weight
        else:
            weighted = 0.0

        report(100)
        confidence = int(round(weighted * 100))
        logger.info(f"Extracted {len(lines)} lines with {confidence}% confidence ({language})")
        return OCRResult(text="\n".join(lines), confidence=confidence)
