"""
Хранилище временных файлов запросов.

Каждый запрос получает собственный файл с уникальным именем
(случайный суффикс из secrets, не из данных клиента).
Файл удаляется в конце обработки запроса на любом пути выхода.
"""

import logging
import os
import re
import secrets
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from image_ocr.schemas import ScratchArtifact

logger = logging.getLogger(__name__)

FILE_PREFIX = "ocr_upload_"
DEFAULT_EXTENSION = "img"

_EXTENSION_RE = re.compile(r"^[A-Za-z0-9]{1,8}$")


class StorageError(Exception):
    """Не удалось записать временный файл (нет места, нет прав и т.п.)."""


def safe_extension(filename: Optional[str]) -> str:
    """
    Косметическое расширение для временного файла.

    Берётся из имени файла клиента, только буквы и цифры, до 8 символов.

    Args:
        filename: имя файла от клиента

    Returns:
        str: расширение без точки (по умолчанию "img")
    """
    if not filename:
        return DEFAULT_EXTENSION

    # Отрезаем возможный путь (в том числе windows-style)
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    _, dot, ext = name.rpartition(".")
    if not dot or not _EXTENSION_RE.match(ext):
        return DEFAULT_EXTENSION
    return ext.lower()


def store_artifact(data: bytes, extension: str, scratch_dir: Path) -> ScratchArtifact:
    """
    Записывает байты во временный файл с уникальным именем.

    Файл создаётся эксклюзивно и полностью записывается (flush + fsync)
    до того, как вызывающий получит путь. Недописанный файл удаляется.

    Args:
        data: проверенные байты загрузки
        extension: расширение (см. safe_extension)
        scratch_dir: директория для временных файлов

    Returns:
        ScratchArtifact: путь и размер записанного файла

    Raises:
        StorageError: при ошибках записи
    """
    path = scratch_dir / f"{FILE_PREFIX}{secrets.token_hex(8)}.{extension}"

    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except OSError as e:
        raise StorageError(f"Не удалось создать временный файл: {e}") from e

    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
    except OSError as e:
        path.unlink(missing_ok=True)
        raise StorageError(f"Не удалось записать временный файл: {e}") from e

    logger.debug(f"Временный файл создан: {path.name}, {len(data)} байт")
    return ScratchArtifact(path=path, size_bytes=len(data))


def release_artifact(artifact: ScratchArtifact) -> None:
    """
    Удаляет временный файл. Повторный вызов безопасен.

    Ошибка удаления не должна подменять результат запроса,
    поэтому она только логируется.

    Args:
        artifact: временный файл запроса
    """
    try:
        artifact.path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Не удалось удалить временный файл {artifact.path}: {e}")
        return

    logger.debug(f"Временный файл удалён: {artifact.path.name}")


@contextmanager
def scratch_artifact(
    data: bytes,
    extension: str,
    scratch_dir: Path,
) -> Iterator[ScratchArtifact]:
    """
    Временный файл на время блока with.

    Удаление выполняется при любом выходе: успех, ошибка, отмена задачи.

    Raises:
        StorageError: если файл не удалось записать (блок не выполняется)
    """
    artifact = store_artifact(data, extension, scratch_dir)
    try:
        yield artifact
    finally:
        release_artifact(artifact)
