"""
Сервисы обработки загрузки.

Модули:
    - validator: проверка размера и типа по содержимому
    - scratch_store: временные файлы запросов
    - backends: Tesseract CLI и Google Vision API
    - normalizer: единая форма результата
    - pipeline: координация всех этапов
"""

from image_ocr.services.backends import build_backend
from image_ocr.services.pipeline import process_upload
from image_ocr.services.validator import validate_upload

__all__ = [
    "build_backend",
    "process_upload",
    "validate_upload",
]
