"""
Сервис распознавания текста с изображений — FastAPI приложение.

Принимает одно изображение (multipart, поле image), проверяет его
и передаёт активному бэкенду: локальному Tesseract или Google Vision API.

Эндпоинты:
    POST /ocr/execute — загрузка изображения и распознавание текста
    GET  /health — проверка работоспособности (бэкенд + конфиг)

Запуск:
    uvicorn image_ocr.main:app --host 0.0.0.0 --port 8000
"""

import asyncio
import json
import logging
import time
from typing import Awaitable, Optional, TypeVar

from fastapi import APIRouter, FastAPI, File, HTTPException, Request, Response, UploadFile
from fastapi.responses import JSONResponse

from image_ocr.config import Settings
from image_ocr.schemas import ErrorKind, FileInfo, OCRResponse, UploadRequest
from image_ocr.services.backends import RecognitionBackend, build_backend
from image_ocr.services.backends.tesseract_cli import get_tesseract_version
from image_ocr.services.pipeline import process_upload

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Как часто проверяем, не отключился ли клиент
DISCONNECT_POLL_SECONDS = 0.5

# HTTP статус для каждого вида ошибки
STATUS_BY_ERROR: dict[ErrorKind, int] = {
    ErrorKind.NO_FILE_PROVIDED: 400,
    ErrorKind.FILE_TOO_LARGE: 413,
    ErrorKind.UNSUPPORTED_TYPE: 415,
    ErrorKind.STORAGE_FAILURE: 500,
    ErrorKind.MISCONFIGURED_BACKEND: 500,
    ErrorKind.BACKEND_UNAVAILABLE: 503,
    ErrorKind.BACKEND_EXECUTION_FAILED: 502,
    ErrorKind.TRANSPORT_FAILURE: 502,
    ErrorKind.REMOTE_ERROR: 502,
    ErrorKind.BACKEND_TIMEOUT: 504,
}


class UnicodeJSONResponse(JSONResponse):
    """JSON ответ с нормальным отображением кириллицы (без \\uXXXX экранирования)."""

    def render(self, content) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("utf-8")


class ClientDisconnected(Exception):
    """Клиент закрыл соединение до окончания обработки."""


router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    """
    Проверка работоспособности сервиса.

    Для Tesseract проверяет доступность бинарника и версию,
    для Vision — наличие ключа API. Возвращает текущую конфигурацию.

    Returns:
        dict: статус сервиса и активного бэкенда
    """
    settings: Settings = request.app.state.settings

    backend_info: dict = {"name": settings.backend}
    if settings.backend == "tesseract":
        try:
            version = await get_tesseract_version(settings.tesseract_cmd)
            backend_info.update(available=True, version=version)
        except (OSError, RuntimeError) as e:
            backend_info.update(available=False, version=f"error: {e}")
    else:
        backend_info.update(
            available=bool(settings.vision_api_key),
            endpoint=settings.vision_endpoint,
        )

    return {
        "status": "ok" if backend_info["available"] else "degraded",
        "service": "image-ocr",
        "backend": backend_info,
        "config": {
            "max_file_size_mb": settings.max_file_size_mb,
            "allowed_mime_types": list(settings.allowed_mime_types),
            "backend_timeout_seconds": settings.backend_timeout_seconds,
            "tesseract_dpi": settings.tesseract_dpi,
        },
    }


@router.post("/ocr/execute", response_model=OCRResponse)
async def execute_ocr(
    request: Request,
    response: Response,
    image: Optional[UploadFile] = File(
        default=None,
        description="Изображение: JPEG, PNG, WEBP, GIF, TIFF, BMP",
    ),
) -> OCRResponse:
    """
    Распознаёт текст на загруженном изображении.

    Args:
        image: изображение (multipart/form-data, поле image)

    Returns:
        OCRResponse: текст или описание ошибки; HTTP статус зависит от вида ошибки

    Raises:
        HTTPException: при непредвиденных ошибках обработки
    """
    start_time = time.time()
    settings: Settings = request.app.state.settings
    backend: RecognitionBackend = request.app.state.backend

    # 1. Читаем файл, но не больше лимита + 1 байт
    upload = await _read_upload(image, settings)
    logger.info(
        f"Получен файл: {upload.filename}, {upload.declared_size} байт, "
        f"Content-Type клиента: {upload.content_type}"
    )

    # 2. Пайплайн; отключение клиента отменяет обработку
    try:
        result = await _run_until_disconnect(
            request,
            process_upload(upload, settings, backend),
        )
    except ClientDisconnected:
        logger.warning(f"Клиент отключился, обработка {upload.filename} отменена")
        raise HTTPException(
            status_code=499,
            detail={
                "error": "client_disconnected",
                "message": "Клиент закрыл соединение",
            },
        )
    except Exception as e:
        logger.exception(f"Ошибка обработки файла: {e}")
        raise HTTPException(
            status_code=500,
            detail={
                "error": "processing_error",
                "message": str(e),
            },
        )

    # 3. Формируем ответ
    processing_time_ms = int((time.time() - start_time) * 1000)
    if not result.success:
        response.status_code = STATUS_BY_ERROR.get(result.error.kind, 500)

    return OCRResponse(
        **result.model_dump(),
        backend=backend.name,
        file_info=FileInfo(
            filename=upload.filename or "unknown",
            size_bytes=len(upload.data),
        ),
        processing_time_ms=processing_time_ms,
    )


async def _read_upload(image: Optional[UploadFile], settings: Settings) -> UploadRequest:
    """
    Читает загруженный файл в UploadRequest.

    Читается не больше max_file_bytes + 1 байт: этого достаточно,
    чтобы валидатор увидел превышение лимита.

    Args:
        image: загруженный файл или None
        settings: настройки (лимит размера)

    Returns:
        UploadRequest: данные для пайплайна
    """
    # Браузер присылает пустое имя, если файл не выбран
    if image is None or not image.filename:
        return UploadRequest(data=b"", declared_size=0)

    data = await image.read(settings.max_file_bytes + 1)
    declared_size = image.size if image.size is not None else len(data)
    return UploadRequest(
        data=data,
        declared_size=declared_size,
        filename=image.filename,
        content_type=image.content_type,
    )


async def _run_until_disconnect(request: Request, coro: Awaitable[T]) -> T:
    """
    Выполняет корутину, пока клиент на связи.

    Если клиент отключился — задача отменяется (бэкенд останавливает
    процесс или HTTP запрос, временный файл удаляется) и поднимается
    ClientDisconnected.
    """
    task = asyncio.ensure_future(coro)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                await asyncio.wait({task})
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[RecognitionBackend] = None,
) -> FastAPI:
    """
    Создаёт приложение с неизменяемыми настройками и бэкендом.

    Args:
        settings: настройки (по умолчанию из окружения / .env)
        backend: бэкенд (по умолчанию build_backend(settings))

    Returns:
        FastAPI: приложение
    """
    settings = settings or Settings()

    application = FastAPI(
        title="Image OCR Service",
        description="Распознавание текста с изображений (Tesseract или Google Vision)",
        version="1.0.0",
        default_response_class=UnicodeJSONResponse,
    )
    application.state.settings = settings
    application.state.backend = backend or build_backend(settings)
    application.include_router(router)
    return application


def configure_logging(level: str = "INFO") -> None:
    """Настройка логгера сервиса."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [OCR-Service] %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx пишет URL запроса в INFO, а в query может быть ключ API
    logging.getLogger("httpx").setLevel(logging.WARNING)


_settings = Settings()
configure_logging(_settings.log_level)
app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Запуск Image OCR Service на {_settings.host}:{_settings.port}")
    logger.info(f"Бэкенд: {_settings.backend}")

    uvicorn.run(
        app,
        host=_settings.host,
        port=_settings.port,
        log_level="info",
    )
