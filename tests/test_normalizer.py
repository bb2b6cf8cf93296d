from image_ocr.schemas import NO_TEXT_SENTINEL, ErrorKind, RecognitionOutcome, ValidationVerdict
from image_ocr.services.normalizer import normalize_outcome, normalize_rejection


class TestNormalizeOutcome:
    def test_text(self) -> None:
        result = normalize_outcome(RecognitionOutcome.success("Hello"))
        assert result.success
        assert result.text == "Hello"
        assert result.display_text == "Hello"
        assert not result.no_text_found
        assert result.error is None

    def test_empty_text_is_success_with_sentinel(self) -> None:
        result = normalize_outcome(RecognitionOutcome.success(""))
        assert result.success
        assert result.text == ""
        assert result.no_text_found
        assert result.display_text == NO_TEXT_SENTINEL

    def test_failure(self) -> None:
        result = normalize_outcome(
            RecognitionOutcome.failure(ErrorKind.BACKEND_EXECUTION_FAILED, "exit 2", exit_code=2)
        )
        assert not result.success
        assert result.text is None
        assert result.error.kind == ErrorKind.BACKEND_EXECUTION_FAILED
        assert result.error.detail == {"exit_code": 2}

    def test_failure_message_is_escaped(self) -> None:
        result = normalize_outcome(
            RecognitionOutcome.failure(ErrorKind.REMOTE_ERROR, "<script>alert('x')</script>")
        )
        assert "<script>" not in result.error.message
        assert "&lt;script&gt;" in result.error.message


class TestNormalizeRejection:
    def test_keeps_kind_and_message(self) -> None:
        verdict = ValidationVerdict.reject(ErrorKind.FILE_TOO_LARGE, "too big")
        result = normalize_rejection(verdict)
        assert not result.success
        assert result.error.kind == ErrorKind.FILE_TOO_LARGE
        assert result.error.message == "too big"
