"""
Конфигурация сервиса распознавания изображений.

Все значения читаются из .env файла (или переменных окружения).
Единый префикс: OCR_
Документация по параметрам: .env.example

Настройки неизменяемы (frozen): создаются один раз при старте процесса
и явно передаются в пайплайн, а не читаются из глобального состояния.
"""

import tempfile
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Форматы изображений, которые принимает сервис
DEFAULT_ALLOWED_MIME_TYPES = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/tiff",
    "image/bmp",
)


class Settings(BaseSettings):
    """
    Настройки сервиса.

    Читает переменные с префиксом OCR_ из .env файла.
    Объединяет все параметры: выбор бэкенда, лимиты загрузки, сервер.
    """

    model_config = SettingsConfigDict(
        env_prefix="OCR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # --- Сервер ---
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # --- Выбор бэкенда ---
    # tesseract — локальный CLI, vision — Google Cloud Vision API
    backend: Literal["tesseract", "vision"] = "tesseract"
    # Общий таймаут вызова бэкенда (процесс или HTTP запрос)
    backend_timeout_seconds: float = Field(default=60.0, gt=0)

    # --- Tesseract CLI ---
    tesseract_cmd: str = "tesseract"
    tesseract_dpi: int = Field(default=300, ge=1)
    # Например "rus+eng"; None — язык Tesseract по умолчанию
    tesseract_languages: Optional[str] = None
    tesseract_psm: Optional[int] = Field(default=None, ge=0, le=13)

    # --- Google Cloud Vision ---
    vision_endpoint: str = "https://vision.googleapis.com/v1/images:annotate"
    vision_api_key: str = ""
    # Где передавать ключ: в query (?key=...) или в заголовке X-Goog-Api-Key
    vision_key_location: Literal["query", "header"] = "query"

    # --- Загрузка: лимиты ---
    max_file_bytes: int = Field(default=6 * 1024 * 1024, gt=0)
    allowed_mime_types: tuple[str, ...] = DEFAULT_ALLOWED_MIME_TYPES

    # --- Временные файлы ---
    # None — системная временная директория
    scratch_dir: Optional[Path] = None

    @property
    def max_file_size_mb(self) -> float:
        """Лимит размера файла в МБ (для сообщений и /health)."""
        return round(self.max_file_bytes / 1024 / 1024, 2)

    def resolved_scratch_dir(self) -> Path:
        """Директория для временных файлов запросов."""
        if self.scratch_dir is not None:
            return self.scratch_dir
        return Path(tempfile.gettempdir())
