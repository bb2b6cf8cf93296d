from image_ocr.config import Settings
from image_ocr.schemas import ErrorKind, UploadRequest
from image_ocr.services.validator import (
    UNKNOWN_MEDIA_TYPE,
    identify_with_pillow,
    sniff_media_type,
    validate_upload,
)


def _upload(data: bytes, filename: str = "scan.png", declared_size: int = None) -> UploadRequest:
    return UploadRequest(
        data=data,
        declared_size=len(data) if declared_size is None else declared_size,
        filename=filename,
    )


class TestSniffMediaType:
    def test_png(self, png_bytes: bytes) -> None:
        assert sniff_media_type(png_bytes) == "image/png"

    def test_jpeg(self, jpeg_bytes: bytes) -> None:
        assert sniff_media_type(jpeg_bytes) == "image/jpeg"

    def test_gif(self) -> None:
        assert sniff_media_type(b"GIF89a\x01\x00\x01\x00") == "image/gif"

    def test_webp(self) -> None:
        assert sniff_media_type(b"RIFF\x24\x00\x00\x00WEBPVP8 ") == "image/webp"

    def test_riff_without_webp_is_unknown(self) -> None:
        assert sniff_media_type(b"RIFF\x24\x00\x00\x00WAVEfmt ") == UNKNOWN_MEDIA_TYPE

    def test_tiff_both_byte_orders(self) -> None:
        assert sniff_media_type(b"II*\x00\x08\x00\x00\x00") == "image/tiff"
        assert sniff_media_type(b"MM\x00*\x00\x00\x00\x08") == "image/tiff"

    def test_bmp(self, bmp_bytes: bytes) -> None:
        assert sniff_media_type(bmp_bytes) == "image/bmp"

    def test_text_starting_with_bm_is_not_bmp(self) -> None:
        assert sniff_media_type(b"BMW annual report 2024\nrevenue grew...\n") == UNKNOWN_MEDIA_TYPE

    def test_bm_with_nonzero_reserved_fields_is_not_bmp(self) -> None:
        header = b"BM" + b"\x36\x00\x00\x00" + b"\x01\x00\x00\x00" + b"\x36\x00\x00\x00" + b"\x28\x00\x00\x00"
        assert sniff_media_type(header) == UNKNOWN_MEDIA_TYPE

    def test_bm_with_unknown_dib_header_size_is_not_bmp(self) -> None:
        header = b"BM" + b"\x36\x00\x00\x00" + b"\x00\x00\x00\x00" + b"\x36\x00\x00\x00" + b"\x29\x00\x00\x00"
        assert sniff_media_type(header) == UNKNOWN_MEDIA_TYPE

    def test_pdf(self) -> None:
        assert sniff_media_type(b"%PDF-1.7\n") == "application/pdf"

    def test_unknown(self) -> None:
        assert sniff_media_type(b"hello world") == UNKNOWN_MEDIA_TYPE


class TestIdentifyWithPillow:
    def test_identifies_ppm(self, ppm_bytes: bytes) -> None:
        assert identify_with_pillow(ppm_bytes) == "image/x-portable-anymap"

    def test_returns_none_for_garbage(self) -> None:
        assert identify_with_pillow(b"definitely not an image") is None


class TestValidateUpload:
    def test_accepts_png(self, png_bytes: bytes, settings: Settings) -> None:
        verdict = validate_upload(_upload(png_bytes), settings)
        assert verdict.accepted
        assert verdict.media_type == "image/png"

    def test_accepts_bmp(self, bmp_bytes: bytes, settings: Settings) -> None:
        verdict = validate_upload(_upload(bmp_bytes, filename="scan.bmp"), settings)
        assert verdict.accepted
        assert verdict.media_type == "image/bmp"

    def test_rejects_text_file_starting_with_bm(self, settings: Settings) -> None:
        verdict = validate_upload(_upload(b"BMW annual report 2024\nrevenue grew...\n", filename="report.bmp"), settings)
        assert not verdict.accepted
        assert verdict.error_kind == ErrorKind.UNSUPPORTED_TYPE

    def test_rejects_empty_body(self, settings: Settings) -> None:
        verdict = validate_upload(_upload(b""), settings)
        assert not verdict.accepted
        assert verdict.error_kind == ErrorKind.NO_FILE_PROVIDED

    def test_rejects_declared_size_over_limit(self, png_bytes: bytes, scratch_dir) -> None:
        settings = Settings(_env_file=None, scratch_dir=scratch_dir, max_file_bytes=1024)
        verdict = validate_upload(_upload(png_bytes, declared_size=4096), settings)
        assert verdict.error_kind == ErrorKind.FILE_TOO_LARGE
        assert "1024" in verdict.message

    def test_rejects_actual_size_over_limit_despite_small_declared_size(self, scratch_dir) -> None:
        settings = Settings(_env_file=None, scratch_dir=scratch_dir, max_file_bytes=100)
        data = b"\x89PNG\r\n\x1a\n" + b"\x00" * 200
        verdict = validate_upload(_upload(data, declared_size=10), settings)
        assert verdict.error_kind == ErrorKind.FILE_TOO_LARGE

    def test_size_check_runs_before_type_check(self, scratch_dir) -> None:
        settings = Settings(_env_file=None, scratch_dir=scratch_dir, max_file_bytes=10)
        verdict = validate_upload(_upload(b"%PDF-1.7" + b"x" * 100), settings)
        assert verdict.error_kind == ErrorKind.FILE_TOO_LARGE

    def test_rejects_pdf_with_detected_type_in_message(self, settings: Settings) -> None:
        verdict = validate_upload(_upload(b"%PDF-1.7\n%...", filename="scan.png"), settings)
        assert verdict.error_kind == ErrorKind.UNSUPPORTED_TYPE
        assert "application/pdf" in verdict.message

    def test_ignores_client_extension(self, settings: Settings) -> None:
        verdict = validate_upload(_upload(b"plain text pretending", filename="photo.jpg"), settings)
        assert verdict.error_kind == ErrorKind.UNSUPPORTED_TYPE

    def test_rejects_image_type_outside_allow_list(self, png_bytes: bytes, scratch_dir) -> None:
        settings = Settings(
            _env_file=None,
            scratch_dir=scratch_dir,
            allowed_mime_types=("image/jpeg",),
        )
        verdict = validate_upload(_upload(png_bytes), settings)
        assert verdict.error_kind == ErrorKind.UNSUPPORTED_TYPE
        assert "image/png" in verdict.message

    def test_falls_back_to_pillow(self, ppm_bytes: bytes, scratch_dir) -> None:
        settings = Settings(
            _env_file=None,
            scratch_dir=scratch_dir,
            allowed_mime_types=("image/png", "image/x-portable-anymap"),
        )
        verdict = validate_upload(_upload(ppm_bytes, filename="scan.ppm"), settings)
        assert verdict.accepted
        assert verdict.media_type == "image/x-portable-anymap"

    def test_pillow_result_outside_allow_list_is_rejected(self, ppm_bytes: bytes, settings: Settings) -> None:
        verdict = validate_upload(_upload(ppm_bytes), settings)
        assert verdict.error_kind == ErrorKind.UNSUPPORTED_TYPE
