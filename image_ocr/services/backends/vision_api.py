"""
Удалённый бэкенд: Google Cloud Vision (images:annotate).

Отправляет изображение в base64 одним POST запросом с функцией
TEXT_DETECTION и разбирает ответ.

Приоритет разбора:
    1. Сетевая ошибка — TransportFailure (таймаут — BackendTimeout)
    2. HTTP статус != 200 — RemoteError
    3. fullTextAnnotation.text → textAnnotations[0].description → пустой текст
    4. Нечитаемое тело при 200 (не JSON, битое сжатие) — RemoteError (malformed response)

Повторов нет: политика ретраев — на стороне вызывающего.
"""

import asyncio
import base64
import logging
from typing import Any, Optional

import httpx

from image_ocr.schemas import ErrorKind, RecognitionInput, RecognitionOutcome
from image_ocr.services.backends.base import RecognitionBackend, truncate_diagnostic

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Goog-Api-Key"


def build_request_body(image_bytes: bytes) -> dict:
    """
    Тело запроса images:annotate.

    Args:
        image_bytes: содержимое изображения

    Returns:
        dict: {"requests": [{"image": {...}, "features": [...]}]}
    """
    return {
        "requests": [
            {
                "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                "features": [{"type": "TEXT_DETECTION", "maxResults": 1}],
            }
        ]
    }


def extract_text(payload: Any) -> RecognitionOutcome:
    """
    Достаёт текст из разобранного JSON ответа Vision API.

    Отсутствие аннотаций — успех с пустым текстом, а не ошибка.

    Args:
        payload: разобранный JSON

    Returns:
        RecognitionOutcome: текст или RemoteError
    """
    if not isinstance(payload, dict):
        return RecognitionOutcome.failure(
            ErrorKind.REMOTE_ERROR,
            "Vision API: malformed response (ожидался JSON объект)",
            status_code=200,
        )

    responses = payload.get("responses")
    first: dict = {}
    if isinstance(responses, list) and responses and isinstance(responses[0], dict):
        first = responses[0]

    # Ошибка по конкретному изображению приходит внутри ответа 200
    error = first.get("error")
    if isinstance(error, dict) and error:
        return RecognitionOutcome.failure(
            ErrorKind.REMOTE_ERROR,
            f"Vision API error: {error.get('message', 'unknown error')}",
            status_code=200,
            remote_code=error.get("code"),
        )

    full_text = first.get("fullTextAnnotation")
    if isinstance(full_text, dict) and isinstance(full_text.get("text"), str):
        return RecognitionOutcome.success(full_text["text"])

    annotations = first.get("textAnnotations")
    if isinstance(annotations, list) and annotations and isinstance(annotations[0], dict):
        description = annotations[0].get("description")
        if isinstance(description, str):
            return RecognitionOutcome.success(description)

    # Текст не найден
    return RecognitionOutcome.success("")


class VisionApiBackend(RecognitionBackend):
    """
    Распознавание через Google Cloud Vision REST API.

    Пустой ключ — MisconfiguredBackend до любого сетевого вызова.
    """

    name = "vision"

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        timeout_seconds: float = 60.0,
        key_location: str = "query",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.key_location = key_location
        # Подменяется в тестах (httpx.MockTransport)
        self._transport = transport

    def _auth(self) -> tuple[dict, dict]:
        """Параметры query и заголовки с ключом API."""
        if self.key_location == "header":
            return {}, {API_KEY_HEADER: self.api_key}
        return {"key": self.api_key}, {}

    async def recognize(self, image: RecognitionInput) -> RecognitionOutcome:
        if not self.api_key:
            logger.error("Vision API: ключ не задан (OCR_VISION_API_KEY)")
            return RecognitionOutcome.failure(
                ErrorKind.MISCONFIGURED_BACKEND,
                "Google Vision API key не задан в конфигурации.",
            )

        params, headers = self._auth()
        body = build_request_body(image.data)
        logger.info(f"Запрос к Vision API: {len(image.data)} байт, {image.media_type}")

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self._transport,
            ) as client:
                # Общий дедлайн поверх таймаутов httpx: отмена прерывает запрос
                response = await asyncio.wait_for(
                    client.post(self.endpoint, params=params, headers=headers, json=body),
                    timeout=self.timeout_seconds,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.error(f"Таймаут Vision API: {self.timeout_seconds}s")
            return RecognitionOutcome.failure(
                ErrorKind.BACKEND_TIMEOUT,
                f"Vision API не ответил за {self.timeout_seconds} секунд",
                timeout_seconds=self.timeout_seconds,
            )
        except httpx.TransportError as e:
            logger.error(f"Сетевая ошибка Vision API: {e!r}")
            return RecognitionOutcome.failure(
                ErrorKind.TRANSPORT_FAILURE,
                f"Сетевая ошибка Vision API: {str(e) or type(e).__name__}",
                transport_error=type(e).__name__,
            )
        except httpx.DecodingError as e:
            # Тело ответа не распаковывается (битый Content-Encoding)
            logger.warning(f"Vision API: не удалось декодировать тело ответа: {e}")
            return RecognitionOutcome.failure(
                ErrorKind.REMOTE_ERROR,
                "Vision API: malformed response",
                decoding_error=str(e),
            )
        except httpx.RequestError as e:
            # TooManyRedirects и прочие ошибки запроса вне TransportError
            logger.error(f"Ошибка запроса к Vision API: {e!r}")
            return RecognitionOutcome.failure(
                ErrorKind.TRANSPORT_FAILURE,
                f"Ошибка запроса к Vision API: {str(e) or type(e).__name__}",
                transport_error=type(e).__name__,
            )

        if response.status_code != 200:
            logger.warning(f"Vision API вернул HTTP {response.status_code}")
            return RecognitionOutcome.failure(
                ErrorKind.REMOTE_ERROR,
                f"Vision API: HTTP {response.status_code} response",
                status_code=response.status_code,
                body=truncate_diagnostic(response.text),
            )

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Vision API: тело ответа не является JSON")
            return RecognitionOutcome.failure(
                ErrorKind.REMOTE_ERROR,
                "Vision API: malformed response",
                status_code=200,
                body=truncate_diagnostic(response.text),
            )

        outcome = extract_text(payload)
        if outcome.ok:
            logger.info(f"Vision API: {len(outcome.text or '')} символов")
        return outcome
