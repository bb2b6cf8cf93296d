"""
Схемы данных сервиса распознавания изображений.

Включает:
    - Таксономию ошибок (ErrorKind)
    - Внутренние dataclass'ы пайплайна (загрузка, вердикт, результат бэкенда)
    - Pydantic модели для API (нормализованный результат, ответ)
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel

# Что показываем вместо пустого текста
NO_TEXT_SENTINEL = "[No text found]"


class ErrorKind(str, Enum):
    """
    Виды ошибок пайплайна.

    Все ошибки терминальны для запроса: ядро не делает повторов,
    политика ретраев — решение вызывающей стороны.
    """

    NO_FILE_PROVIDED = "no_file_provided"
    FILE_TOO_LARGE = "file_too_large"
    UNSUPPORTED_TYPE = "unsupported_type"
    STORAGE_FAILURE = "storage_failure"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    BACKEND_EXECUTION_FAILED = "backend_execution_failed"
    TRANSPORT_FAILURE = "transport_failure"
    REMOTE_ERROR = "remote_error"
    MISCONFIGURED_BACKEND = "misconfigured_backend"
    BACKEND_TIMEOUT = "backend_timeout"


# =============================================================================
# Внутренние dataclass'ы для пайплайна
# =============================================================================


@dataclass
class UploadRequest:
    """
    Загруженный файл в том виде, в каком его прислал клиент.

    filename и content_type не доверенные: тип определяется только по байтам,
    имя файла используется лишь для косметического расширения.

    Attributes:
        data: содержимое файла
        declared_size: размер, заявленный клиентом (или длина data)
        filename: имя файла от клиента
        content_type: Content-Type от клиента (только для логов)
    """

    data: bytes
    declared_size: int
    filename: Optional[str] = None
    content_type: Optional[str] = None


@dataclass
class ValidationVerdict:
    """
    Решение валидатора: Accept(media_type) или Reject(kind, message).

    Attributes:
        accepted: прошёл ли файл все проверки
        media_type: определённый по содержимому MIME тип
        error_kind: вид ошибки при отказе
        message: описание причины отказа
    """

    accepted: bool
    media_type: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def accept(cls, media_type: str) -> "ValidationVerdict":
        return cls(accepted=True, media_type=media_type)

    @classmethod
    def reject(cls, kind: ErrorKind, message: str) -> "ValidationVerdict":
        return cls(accepted=False, error_kind=kind, message=message)


@dataclass
class ScratchArtifact:
    """
    Временный файл с проверенными байтами загрузки.

    Принадлежит одному запросу, удаляется в конце его обработки.

    Attributes:
        path: путь к файлу
        size_bytes: записанный размер
    """

    path: Path
    size_bytes: int


@dataclass
class RecognitionInput:
    """
    Вход бэкенда распознавания.

    Локальный бэкенд работает с путём, удалённый — с байтами.

    Attributes:
        path: путь к временному файлу
        data: содержимое изображения
        media_type: MIME тип, определённый валидатором
    """

    path: Path
    data: bytes
    media_type: str


@dataclass
class RecognitionOutcome:
    """
    Результат вызова бэкенда: текст или ошибка.

    Пустой text при error_kind=None — валидный успех ("текст не найден").

    Attributes:
        text: распознанный текст (None при ошибке)
        error_kind: вид ошибки
        message: человекочитаемое описание ошибки
        detail: диагностика (код выхода, HTTP статус, вывод процесса)
    """

    text: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    detail: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def success(cls, text: str) -> "RecognitionOutcome":
        return cls(text=text)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        **detail: Any,
    ) -> "RecognitionOutcome":
        return cls(error_kind=kind, message=message, detail=detail)


# =============================================================================
# Pydantic модели для API
# =============================================================================


class ErrorInfo(BaseModel):
    """
    Описание ошибки для клиента.

    Attributes:
        kind: вид ошибки из таксономии
        message: сообщение (недоверенный вывод бэкенда экранирован)
        detail: диагностика: exit_code, status_code, output, body
    """

    kind: ErrorKind
    message: str
    detail: dict[str, Any] = {}


class OCRResult(BaseModel):
    """
    Нормализованный результат пайплайна.

    Ровно одна из форм: success=True + text, либо success=False + error.

    Attributes:
        success: успешность распознавания
        text: распознанный текст (может быть пустым)
        no_text_found: текст пуст, но ошибки не было
        display_text: текст для показа (NO_TEXT_SENTINEL вместо пустоты)
        media_type: MIME тип по содержимому (если файл прошёл валидацию)
        error: описание ошибки (если success=False)
    """

    success: bool
    text: Optional[str] = None
    no_text_found: bool = False
    display_text: Optional[str] = None
    media_type: Optional[str] = None
    error: Optional[ErrorInfo] = None


class FileInfo(BaseModel):
    """
    Информация о загруженном файле.

    Attributes:
        filename: имя файла
        size_bytes: размер файла в байтах
    """

    filename: str
    size_bytes: int


class OCRResponse(OCRResult):
    """
    Ответ API с результатом распознавания.

    Attributes:
        backend: активный бэкенд (tesseract или vision)
        file_info: информация о файле
        processing_time_ms: общее время обработки в мс
    """

    backend: str
    file_info: Optional[FileInfo] = None
    processing_time_ms: int = 0
