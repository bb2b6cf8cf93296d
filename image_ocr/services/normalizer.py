"""
Нормализация результата: одна форма ответа для обоих бэкендов.
"""

import html

from image_ocr.schemas import (
    NO_TEXT_SENTINEL,
    ErrorInfo,
    ErrorKind,
    OCRResult,
    RecognitionOutcome,
    ValidationVerdict,
)


def normalize_outcome(outcome: RecognitionOutcome) -> OCRResult:
    """
    Приводит результат бэкенда к OCRResult.

    Пустой текст — успех с display_text=NO_TEXT_SENTINEL.
    Сообщение об ошибке экранируется: в нём может быть вывод
    Tesseract или тело HTTP ответа.

    Args:
        outcome: результат бэкенда (или ошибка хранилища)

    Returns:
        OCRResult: success + text, либо success=False + error
    """
    if outcome.ok:
        text = outcome.text or ""
        return OCRResult(
            success=True,
            text=text,
            no_text_found=text == "",
            display_text=text if text else NO_TEXT_SENTINEL,
        )

    return OCRResult(
        success=False,
        error=ErrorInfo(
            kind=outcome.error_kind,
            message=html.escape(outcome.message or "Unknown error"),
            detail=outcome.detail,
        ),
    )


def normalize_rejection(verdict: ValidationVerdict) -> OCRResult:
    """OCRResult для отказа валидатора."""
    return normalize_outcome(
        RecognitionOutcome.failure(
            verdict.error_kind or ErrorKind.UNSUPPORTED_TYPE,
            verdict.message or "Файл отклонён",
        )
    )
