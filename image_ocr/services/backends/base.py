"""
Базовый интерфейс бэкенда распознавания текста.
"""

from abc import ABC, abstractmethod

from image_ocr.schemas import RecognitionInput, RecognitionOutcome

# Сколько символов диагностики (вывод процесса, тело ответа) сохраняем
MAX_DIAGNOSTIC_CHARS = 4000


class RecognitionBackend(ABC):
    """
    Бэкенд распознавания: изображение → текст.

    Ожидаемые ошибки (нет бинарника, код выхода, HTTP статус, таймаут)
    возвращаются как RecognitionOutcome.failure, а не исключениями.
    Отмена задачи (asyncio.CancelledError) пробрасывается дальше
    после остановки процесса или HTTP запроса.
    """

    name: str

    @abstractmethod
    async def recognize(self, image: RecognitionInput) -> RecognitionOutcome:
        """
        Распознаёт текст на изображении.

        Args:
            image: путь к временному файлу, байты и MIME тип

        Returns:
            RecognitionOutcome: текст или ошибка
        """


def truncate_diagnostic(text: str) -> str:
    """Оставляет хвост диагностического текста (обычно там причина ошибки)."""
    if len(text) <= MAX_DIAGNOSTIC_CHARS:
        return text
    return text[-MAX_DIAGNOSTIC_CHARS:]
