# app/services/storage_service.py
import logging
import secrets
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlparse

from flask import Flask
from firebase_admin import storage

from app.core.errors import UploadError, ValidationError
from app.utils.datetime_utils import DateTimeUtils


@dataclass
class UploadedFile:
    """요청에서 받은 업로드 파일. (werkzeug FileStorage에서 변환)"""
    filename: str
    content: bytes
    content_type: str = 'application/octet-stream'

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_file_storage(cls, file_storage) -> Optional['UploadedFile']:
        """빈 파일 필드는 None으로 정규화합니다."""
        if file_storage is None or not file_storage.filename:
            return None
        return cls(
            filename=file_storage.filename,
            content=file_storage.read(),
            content_type=file_storage.mimetype or 'application/octet-stream',
        )


def media_type_for(content_type: str) -> str:
    """MIME 타입으로 게시글 미디어 종류(image/video/audio/pdf/document/file)를 결정합니다."""
    content_type = content_type or ''
    if content_type.startswith('image/'):
        return 'image'
    if content_type.startswith('video/'):
        return 'video'
    if content_type.startswith('audio/'):
        return 'audio'
    if content_type == 'application/pdf':
        return 'pdf'
    if any(token in content_type for token in ('document', 'text', 'sheet', 'presentation', 'msword', 'ms-excel')):
        return 'document'
    return 'file'


class StorageService:
    """
    Firebase Storage 관련 로직을 담당하는 범용 서비스 클래스입니다.
    업로드 경로 규칙, 업로드 후 공개 URL 발급, Blob 삭제를 제공합니다.
    """

    def __init__(self, bucket=None, max_upload_bytes: int = 20 * 1024 * 1024):
        """
        테스트에서는 bucket을 직접 주입하고,
        운영에서는 init_app을 통해 Firebase 버킷을 설정합니다.
        """
        self.bucket = bucket
        self.max_upload_bytes = max_upload_bytes

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷을 설정합니다.
        :param app: Flask 애플리케이션 객체
        """
        self.max_upload_bytes = app.config.get('MAX_UPLOAD_BYTES', self.max_upload_bytes)
        if self.bucket is not None:
            return

        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET 설정이 .env 또는 설정 파일에 필요합니다.")

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    # --- 경로 규칙 ---

    @staticmethod
    def _timestamp() -> int:
        return DateTimeUtils.to_timestamp_ms(DateTimeUtils.now())

    @staticmethod
    def _safe_name(filename: str) -> str:
        return filename.replace('/', '_').replace('\\', '_').strip() or 'file'

    def contribution_proof_path(self, account_number: str, filename: str) -> str:
        return f"contributions/{account_number}/{self._timestamp()}_{self._safe_name(filename)}"

    def expense_receipt_path(self, filename: str) -> str:
        return f"expense_proofs/{self._timestamp()}_{self._safe_name(filename)}"

    def post_media_path(self, user_id: str, media_type: str, filename: str) -> str:
        extension = filename.rsplit('.', 1)[-1].lower() if '.' in filename else 'bin'
        random_part = secrets.token_hex(3)
        return f"posts/{media_type}s/{user_id}_{self._timestamp()}_{random_part}.{extension}"

    # --- 업로드 / 삭제 ---

    def upload(self, path: str, file: UploadedFile) -> str:
        """
        파일을 지정된 경로에 업로드하고 공개 URL을 반환합니다.
        실패 시 UploadError를 발생시키며, 호출자는 문서를 기록하지 않아야 합니다.
        """
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")
        if file.size == 0:
            raise ValidationError("빈 파일은 업로드할 수 없습니다.", details={"filename": file.filename})
        if file.size > self.max_upload_bytes:
            raise ValidationError(
                f"파일 크기는 {self.max_upload_bytes // (1024 * 1024)}MB 이하여야 합니다.",
                details={"filename": file.filename, "size": file.size},
            )

        try:
            blob = self.bucket.blob(path)
            blob.upload_from_string(file.content, content_type=file.content_type)
            blob.make_public()
            logging.info(f"Storage 업로드 성공: {path} ({file.size} bytes)")
            return blob.public_url
        except Exception as e:
            logging.error(f"Storage 업로드 실패 (path: {path}): {e}", exc_info=True)
            raise UploadError("파일 업로드에 실패했습니다.", details={"path": path}) from e

    def delete(self, path: str) -> bool:
        """Blob을 삭제합니다. 존재하지 않으면 False를 반환하고, 그 외 오류는 그대로 전파합니다."""
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")
        blob = self.bucket.blob(path)
        if not blob.exists():
            logging.warning(f"삭제할 Storage 파일이 없습니다: {path}")
            return False
        blob.delete()
        logging.info(f"Storage 파일 삭제 완료: {path}")
        return True

    def path_from_url(self, url: str) -> Optional[str]:
        """
        공개 URL(storage.googleapis.com/<bucket>/<path>) 또는
        다운로드 URL(.../o/<encoded path>?alt=media)에서 Blob 경로를 추출합니다.
        """
        if not url:
            return None
        parsed = urlparse(url)
        if '/o/' in parsed.path:
            return unquote(parsed.path.split('/o/', 1)[1])
        parts = parsed.path.lstrip('/').split('/', 1)
        if len(parts) == 2 and self.bucket is not None and parts[0] == getattr(self.bucket, 'name', None):
            return unquote(parts[1])
        return None
