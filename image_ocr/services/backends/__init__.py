"""
Бэкенды распознавания текста.

Модули:
    - base: интерфейс RecognitionBackend
    - tesseract_cli: локальный Tesseract через subprocess
    - vision_api: Google Cloud Vision через HTTPS
    - factory: выбор бэкенда по конфигурации
"""

from image_ocr.services.backends.base import RecognitionBackend
from image_ocr.services.backends.factory import build_backend
from image_ocr.services.backends.tesseract_cli import TesseractCliBackend
from image_ocr.services.backends.vision_api import VisionApiBackend

__all__ = [
    "RecognitionBackend",
    "TesseractCliBackend",
    "VisionApiBackend",
    "build_backend",
]
