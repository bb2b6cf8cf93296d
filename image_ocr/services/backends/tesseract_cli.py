"""
Локальный бэкенд: Tesseract через командную строку.

Запускает tesseract отдельным процессом с явным списком аргументов
(без shell), читает текст из stdout. stderr сливается в тот же поток
для диагностики.

Команда:
    tesseract <путь> stdout --dpi 300 [-l rus+eng] [--psm N]
"""

import asyncio
import logging
import os
import signal
from pathlib import Path
from typing import Optional

from image_ocr.schemas import ErrorKind, RecognitionInput, RecognitionOutcome
from image_ocr.services.backends.base import RecognitionBackend, truncate_diagnostic

logger = logging.getLogger(__name__)


class TesseractCliBackend(RecognitionBackend):
    """
    Распознавание через локально установленный Tesseract.

    Код выхода 0 — успех, пустой вывод означает "текст не найден".
    Ненулевой код — BackendExecutionFailed с кодом и выводом процесса.
    Бинарник не найден или не запускается — BackendUnavailable.
    """

    name = "tesseract"

    def __init__(
        self,
        tesseract_cmd: str = "tesseract",
        dpi: int = 300,
        languages: Optional[str] = None,
        psm: Optional[int] = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        self.tesseract_cmd = tesseract_cmd
        self.dpi = dpi
        self.languages = languages
        self.psm = psm
        self.timeout_seconds = timeout_seconds

    def build_command(self, image_path: Path) -> list[str]:
        """
        Формирует argv для запуска Tesseract.

        Путь передаётся отдельным элементом списка и никогда
        не интерпретируется как синтаксис shell.

        Args:
            image_path: путь к изображению

        Returns:
            list[str]: список аргументов процесса
        """
        cmd = [
            self.tesseract_cmd,
            str(image_path),
            "stdout",
            "--dpi",
            str(self.dpi),
        ]
        if self.languages:
            cmd.extend(["-l", self.languages])
        if self.psm is not None:
            cmd.extend(["--psm", str(self.psm)])
        return cmd

    async def recognize(self, image: RecognitionInput) -> RecognitionOutcome:
        cmd = self.build_command(image.path)
        logger.info(f"Запуск Tesseract: {image.path.name}, dpi={self.dpi}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=True,
            )
        except OSError as e:
            # FileNotFoundError, PermissionError и т.п. — процесс не стартовал
            logger.error(f"Tesseract недоступен ({self.tesseract_cmd}): {e}")
            return RecognitionOutcome.failure(
                ErrorKind.BACKEND_UNAVAILABLE,
                f"Tesseract не найден или не запускается: {self.tesseract_cmd}. "
                "Убедитесь, что tesseract установлен и доступен в PATH.",
                command=self.tesseract_cmd,
                os_error=str(e),
            )

        try:
            raw_output, _ = await asyncio.wait_for(
                process.communicate(),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            await _kill_process(process)
            logger.error(
                f"Таймаут Tesseract: {self.timeout_seconds}s, процесс pid={process.pid} остановлен"
            )
            return RecognitionOutcome.failure(
                ErrorKind.BACKEND_TIMEOUT,
                f"Tesseract не ответил за {self.timeout_seconds} секунд",
                timeout_seconds=self.timeout_seconds,
            )
        except asyncio.CancelledError:
            await _kill_process(process)
            logger.warning(f"Запрос отменён, процесс Tesseract pid={process.pid} остановлен")
            raise

        output = raw_output.decode("utf-8", errors="replace")

        if process.returncode != 0:
            logger.warning(f"Tesseract завершился с кодом {process.returncode}")
            return RecognitionOutcome.failure(
                ErrorKind.BACKEND_EXECUTION_FAILED,
                f"Tesseract завершился с ошибкой (exit {process.returncode}). "
                f"Вывод Tesseract: {truncate_diagnostic(output).strip()}",
                exit_code=process.returncode,
                output=truncate_diagnostic(output),
            )

        # Tesseract завершает вывод переводом строки и form feed
        text = output.rstrip()
        logger.info(f"Tesseract завершён: {len(text)} символов")
        return RecognitionOutcome.success(text)


async def get_tesseract_version(tesseract_cmd: str, timeout_seconds: float = 10.0) -> str:
    """
    Версия Tesseract по выводу `<cmd> --version`.

    Args:
        tesseract_cmd: путь или имя бинарника (тот же, что у бэкенда)
        timeout_seconds: сколько ждать ответа

    Returns:
        str: версия, например "5.3.0"

    Raises:
        OSError: бинарник не найден или не запускается
        RuntimeError: ненулевой код выхода, пустой вывод или таймаут
    """
    process = await asyncio.create_subprocess_exec(
        tesseract_cmd,
        "--version",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        start_new_session=True,
    )
    try:
        raw_output, _ = await asyncio.wait_for(process.communicate(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        await _kill_process(process)
        raise RuntimeError(f"{tesseract_cmd} --version не ответил за {timeout_seconds} секунд")
    except asyncio.CancelledError:
        await _kill_process(process)
        raise

    output = raw_output.decode("utf-8", errors="replace").strip()
    if process.returncode != 0 or not output:
        raise RuntimeError(f"{tesseract_cmd} --version: exit {process.returncode}")

    # Первая строка: "tesseract 5.3.0", дальше версии библиотек
    first_line = output.splitlines()[0].split()
    if len(first_line) > 1 and first_line[0].lower() == "tesseract":
        return first_line[1]
    return " ".join(first_line)


async def _kill_process(process: asyncio.subprocess.Process) -> None:
    """
    Останавливает всю группу процесса и дожидается завершения.

    Tesseract запускается в отдельной сессии, поэтому его pid — это и
    идентификатор группы: SIGKILL получают и порождённые им процессы.
    """
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    await process.wait()
