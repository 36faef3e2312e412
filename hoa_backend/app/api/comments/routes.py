# app/api/comments/routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required

from app.api.comments.schemas import CommentCreateSchema, CommentResponseSchema
from app.core.context import caller_from_jwt


comments_bp = Blueprint('comments_bp', __name__)


@comments_bp.route('/<string:post_id>/comments', methods=['POST'])
@jwt_required()
def create_comment(post_id: str):
    """
    특정 게시글에 새로운 댓글을 작성합니다.
    - 성공 시, 생성된 댓글 정보를 201 Created 상태 코드와 함께 반환합니다.
    - 같은 comment_id로 다시 요청하면 기존 댓글을 반환하며 댓글 수는 변하지 않습니다.
    """
    comment_service = current_app.services['comments']
    data = CommentCreateSchema().load(request.get_json() or {})
    new_comment = comment_service.add_comment(post_id, caller_from_jwt(), data['text'], data['comment_id'])
    return jsonify(CommentResponseSchema().dump(new_comment)), 201


@comments_bp.route('/<string:post_id>/comments', methods=['GET'])
@jwt_required(optional=True)
def get_comments(post_id: str):
    """
    특정 게시글의 댓글 목록을 작성 순으로 조회합니다.
    """
    comment_service = current_app.services['comments']
    comments = comment_service.get_comments(post_id)
    return jsonify({"comments": CommentResponseSchema(many=True).dump(comments)}), 200
