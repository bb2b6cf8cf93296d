"""
Выбор бэкенда распознавания по конфигурации.

Бэкенд создаётся один раз при старте и не меняется между запросами.
"""

import logging

from image_ocr.config import Settings
from image_ocr.services.backends.base import RecognitionBackend
from image_ocr.services.backends.tesseract_cli import TesseractCliBackend
from image_ocr.services.backends.vision_api import VisionApiBackend

logger = logging.getLogger(__name__)


def build_backend(settings: Settings) -> RecognitionBackend:
    """
    Создаёт активный бэкенд.

    Args:
        settings: настройки сервиса

    Returns:
        RecognitionBackend: TesseractCliBackend или VisionApiBackend

    Raises:
        ValueError: неизвестное имя бэкенда
    """
    if settings.backend == "tesseract":
        logger.info(f"Бэкенд: Tesseract CLI ({settings.tesseract_cmd})")
        return TesseractCliBackend(
            tesseract_cmd=settings.tesseract_cmd,
            dpi=settings.tesseract_dpi,
            languages=settings.tesseract_languages,
            psm=settings.tesseract_psm,
            timeout_seconds=settings.backend_timeout_seconds,
        )

    if settings.backend == "vision":
        logger.info(f"Бэкенд: Google Vision API ({settings.vision_endpoint})")
        return VisionApiBackend(
            endpoint=settings.vision_endpoint,
            api_key=settings.vision_api_key,
            timeout_seconds=settings.backend_timeout_seconds,
            key_location=settings.vision_key_location,
        )

    raise ValueError(f"Неизвестный бэкенд распознавания: {settings.backend}")
