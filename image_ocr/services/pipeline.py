"""
Пайплайн обработки загрузки.

Координирует этапы:
    1. Валидация (размер, тип по содержимому)
    2. Запись во временный файл
    3. Распознавание активным бэкендом
    4. Нормализация результата

Временный файл удаляется при любом исходе, включая отмену запроса.
"""

import logging
import time

from image_ocr.config import Settings
from image_ocr.schemas import (
    ErrorKind,
    OCRResult,
    RecognitionInput,
    RecognitionOutcome,
    UploadRequest,
)
from image_ocr.services.backends.base import RecognitionBackend
from image_ocr.services.normalizer import normalize_outcome, normalize_rejection
from image_ocr.services.scratch_store import StorageError, safe_extension, scratch_artifact
from image_ocr.services.validator import validate_upload

logger = logging.getLogger(__name__)


async def process_upload(
    upload: UploadRequest,
    settings: Settings,
    backend: RecognitionBackend,
) -> OCRResult:
    """
    Основная функция обработки загруженного изображения.

    Args:
        upload: загруженный файл (байты, заявленный размер, имя)
        settings: неизменяемые настройки
        backend: активный бэкенд распознавания

    Returns:
        OCRResult: нормализованный результат

    Raises:
        asyncio.CancelledError: если запрос отменён (временный файл уже удалён)
    """
    total_start = time.perf_counter()

    # 1. Валидация
    verdict = validate_upload(upload, settings)
    if not verdict.accepted:
        logger.warning(f"Файл отклонён ({verdict.error_kind.value}): {verdict.message}")
        return normalize_rejection(verdict)

    logger.info(
        f"Файл принят: {upload.filename or 'без имени'}, "
        f"{len(upload.data)} байт, тип={verdict.media_type}"
    )

    # 2-3. Временный файл + распознавание
    try:
        with scratch_artifact(
            upload.data,
            safe_extension(upload.filename),
            settings.resolved_scratch_dir(),
        ) as artifact:
            outcome = await backend.recognize(
                RecognitionInput(
                    path=artifact.path,
                    data=upload.data,
                    media_type=verdict.media_type,
                )
            )
    except StorageError as e:
        logger.error(f"Ошибка временного хранилища: {e}")
        outcome = RecognitionOutcome.failure(ErrorKind.STORAGE_FAILURE, str(e))

    # 4. Нормализация
    result = normalize_outcome(outcome)
    result.media_type = verdict.media_type

    duration = int((time.perf_counter() - total_start) * 1000)
    if result.success:
        logger.info(
            f"Распознавание завершено ({backend.name}): "
            f"{len(result.text or '')} символов за {duration}ms"
        )
    else:
        logger.warning(
            f"Распознавание не удалось ({backend.name}): "
            f"{result.error.kind.value} за {duration}ms"
        )

    return result
