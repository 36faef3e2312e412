# app/api/comments/schemas.py
from marshmallow import Schema, fields, validate


class CommentCreateSchema(Schema):
    """POST /api/posts/{post_id}/comments 요청 본문의 유효성을 검사합니다."""
    text = fields.Str(required=True, validate=validate.Length(min=1, max=2000))
    # 재전송 시 중복 반영을 막기 위해 클라이언트가 미리 정한 id
    comment_id = fields.Str(load_default=None, validate=[
        validate.Length(min=1, max=128),
        validate.Regexp(r'^[A-Za-z0-9_-]+$', error="comment_id는 영문, 숫자, '_', '-'만 사용할 수 있습니다."),
    ])


class CommentResponseSchema(Schema):
    """댓글 정보 응답 형식을 정의합니다."""
    comment_id = fields.Str(dump_only=True)
    post_id = fields.Str()
    user_id = fields.Str()
    author_name = fields.Str()
    content = fields.Str()
    photo_url = fields.Str(allow_none=True)
    created_at = fields.DateTime()
