"""
Image OCR Service — распознавание текста с загруженного изображения.

Пайплайн одного запроса:
    валидация → временный файл → бэкенд (Tesseract CLI или Google Vision) → нормализация

Временный файл удаляется при любом исходе обработки.
"""

from image_ocr.config import Settings
from image_ocr.schemas import ErrorKind, OCRResponse, OCRResult, UploadRequest

__all__ = [
    "Settings",
    "ErrorKind",
    "OCRResponse",
    "OCRResult",
    "UploadRequest",
]
