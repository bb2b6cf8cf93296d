"""
Валидация загруженного файла.

Проверки (первая неудачная — результат):
    1. Файл вообще передан (непустое тело)
    2. Размер не больше лимита
    3. Тип по содержимому (сигнатуры), с запасной проверкой через Pillow

Имя файла и Content-Type от клиента для решения о типе не используются.
Валидатор ничего не пишет на диск.
"""

import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

from image_ocr.config import Settings
from image_ocr.schemas import ErrorKind, UploadRequest, ValidationVerdict

logger = logging.getLogger(__name__)

# Сигнатуры форматов: (смещение, байты, MIME тип)
_SIGNATURES: tuple[tuple[int, bytes, str], ...] = (
    (0, b"\xff\xd8\xff", "image/jpeg"),
    (0, b"\x89PNG\r\n\x1a\n", "image/png"),
    (0, b"GIF87a", "image/gif"),
    (0, b"GIF89a", "image/gif"),
    (0, b"II*\x00", "image/tiff"),
    (0, b"MM\x00*", "image/tiff"),
    (0, b"%PDF", "application/pdf"),
    (0, b"PK\x03\x04", "application/zip"),
    (0, b"\x1f\x8b", "application/gzip"),
)

UNKNOWN_MEDIA_TYPE = "application/octet-stream"

# Допустимые размеры DIB заголовка BMP (BITMAPCOREHEADER ... BITMAPV5HEADER)
_BMP_DIB_HEADER_SIZES = frozenset({12, 40, 52, 56, 64, 108, 124})


def _is_bmp(data: bytes) -> bool:
    """
    Проверяет BITMAPFILEHEADER, а не только "BM".

    Двух байт мало: с "BM" начинается и обычный текст ("BMW ...").
    Зарезервированные поля (смещения 6-10) должны быть нулевыми,
    размер DIB заголовка (смещение 14) — одним из известных.
    """
    if len(data) < 18 or data[:2] != b"BM":
        return False
    if data[6:10] != b"\x00\x00\x00\x00":
        return False
    return int.from_bytes(data[14:18], "little") in _BMP_DIB_HEADER_SIZES


def sniff_media_type(data: bytes) -> str:
    """
    Определяет MIME тип по первым байтам файла.

    Args:
        data: содержимое файла

    Returns:
        str: MIME тип или application/octet-stream, если сигнатура неизвестна
    """
    # WEBP: RIFF....WEBP
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"

    if _is_bmp(data):
        return "image/bmp"

    for offset, magic, media_type in _SIGNATURES:
        if data[offset:offset + len(magic)] == magic:
            return media_type

    return UNKNOWN_MEDIA_TYPE


def identify_with_pillow(data: bytes) -> Optional[str]:
    """
    Запасной классификатор: просит Pillow опознать изображение.

    Image.open читает только заголовок, полного декодирования нет.

    Args:
        data: содержимое файла

    Returns:
        str | None: MIME тип по мнению Pillow или None
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError):
        return None

    if not image_format:
        return None
    return Image.MIME.get(image_format)


def validate_upload(upload: UploadRequest, settings: Settings) -> ValidationVerdict:
    """
    Решает, можно ли обрабатывать загрузку.

    Args:
        upload: загруженный файл
        settings: настройки (лимит размера, разрешённые типы)

    Returns:
        ValidationVerdict: accept(media_type) или reject(kind, message)
    """
    # 1. Файл передан
    if not upload.data or upload.declared_size == 0:
        return ValidationVerdict.reject(
            ErrorKind.NO_FILE_PROVIDED,
            "Файл не загружен.",
        )

    # 2. Размер: проверяем и заявленный, и фактически прочитанный
    size = max(upload.declared_size, len(upload.data))
    if size > settings.max_file_bytes:
        return ValidationVerdict.reject(
            ErrorKind.FILE_TOO_LARGE,
            f"Файл слишком большой: {size} байт, "
            f"максимум: {settings.max_file_size_mb} МБ ({settings.max_file_bytes} байт)",
        )

    # 3. Тип по содержимому
    allowed = set(settings.allowed_mime_types)
    media_type = sniff_media_type(upload.data)
    if media_type in allowed:
        return ValidationVerdict.accept(media_type)

    pillow_type = identify_with_pillow(upload.data)
    if pillow_type in allowed:
        logger.info(f"Тип определён через Pillow: {pillow_type} (сигнатура: {media_type})")
        return ValidationVerdict.accept(pillow_type)

    return ValidationVerdict.reject(
        ErrorKind.UNSUPPORTED_TYPE,
        f"Неподдерживаемый тип файла: {pillow_type or media_type}",
    )
