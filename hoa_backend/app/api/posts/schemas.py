# app/api/posts/schemas.py
from marshmallow import EXCLUDE, Schema, fields, pre_load, validate

from app.api.contributions.schemas import drop_blank_fields


# --- API 요청 스키마 ---

class PostCreateSchema(Schema):
    """POST /api/posts 요청(multipart 폼)의 유효성을 검사합니다. 첨부 파일 필드명: 'media'"""
    class Meta:
        unknown = EXCLUDE

    category = fields.Str(required=True)
    content = fields.Str(load_default='', validate=validate.Length(max=5000))
    pinned = fields.Bool(load_default=False)

    @pre_load
    def strip_blanks(self, data, **kwargs):
        return drop_blank_fields(data)


class PostUpdateSchema(Schema):
    """PATCH /api/posts/{post_id} 요청 본문. 카운터 필드는 받지 않습니다."""
    content = fields.Str(validate=validate.Length(min=1, max=5000))
    category = fields.Str()
    pinned = fields.Bool()


class PostListQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    limit = fields.Int(load_default=20, validate=validate.Range(min=1, max=100))
    cursor = fields.Str(load_default=None)


# --- API 응답 스키마 ---

class PostResponseSchema(Schema):
    """게시글 정보 응답을 위한 최종 JSON 형식을 정의합니다."""
    post_id = fields.Str(dump_only=True)
    author_id = fields.Str()
    author_name = fields.Str()
    author_photo_url = fields.Str(allow_none=True)
    category = fields.Str()
    content = fields.Str()
    media_url = fields.Str(allow_none=True)
    media_type = fields.Str(allow_none=True)
    comments_count = fields.Int()
    reacts_count = fields.Int()
    pinned = fields.Bool()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()


class ReactionToggleResponseSchema(Schema):
    reacted = fields.Bool()
    reacts_count = fields.Int()


class ReactionResponseSchema(Schema):
    user_id = fields.Str()
    author_name = fields.Str()
    photo_url = fields.Str(allow_none=True)
    created_at = fields.DateTime()
