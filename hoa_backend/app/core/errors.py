# app/core/errors.py
"""
애플리케이션 공통 예외 클래스

모든 서비스 계층 예외는 HoaError를 상속하며, 전역 에러 핸들러가
error_code / status_code를 그대로 JSON 응답으로 변환합니다.
"""
from typing import Optional, Dict, Any


class HoaError(Exception):
    """HOA 백오피스 예외의 기반 클래스"""
    error_code = "UNKNOWN_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """예외를 표준 에러 응답 형식으로 변환합니다."""
        response = {"error_code": self.error_code, "message": self.message}
        if self.details:
            response["details"] = self.details
        return response


class ValidationError(HoaError):
    """입력값이 누락되었거나 형식이 잘못된 경우 (쓰기 차단)"""
    error_code = "VALIDATION_ERROR"
    status_code = 400


class RecordNotFoundError(HoaError, LookupError):
    """조회 대상 문서가 존재하지 않는 경우"""
    error_code = "RESOURCE_NOT_FOUND"
    status_code = 404


class MemberNotFoundError(RecordNotFoundError):
    """계좌번호에 해당하는 회원이 없거나 삭제된 회원인 경우"""
    error_code = "MEMBER_NOT_FOUND"


class ExpenseNotFoundError(RecordNotFoundError):
    error_code = "EXPENSE_NOT_FOUND"


class PostNotFoundError(RecordNotFoundError):
    error_code = "POST_NOT_FOUND"


class UploadError(HoaError):
    """Blob 업로드 실패. 업로드가 실패하면 문서는 절대 기록되지 않습니다."""
    error_code = "UPLOAD_FAILED"
    status_code = 502


class TransactionConflictError(HoaError):
    """트랜잭션 재시도 횟수를 모두 소진한 경우"""
    error_code = "TRANSACTION_CONFLICT"
    status_code = 409


class CommentIdConflictError(HoaError):
    """이미 다른 작성자 또는 다른 내용으로 사용된 comment_id로 댓글을 보낸 경우"""
    error_code = "COMMENT_ID_CONFLICT"
    status_code = 409


class CascadeCleanupError(HoaError):
    """
    게시글 삭제 후 하위 문서/미디어 정리 실패.
    로그로만 남기며 호출자에게 전파하지 않습니다.
    """
    error_code = "CASCADE_CLEANUP_FAILED"
    status_code = 500
