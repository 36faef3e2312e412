# app/api/posts/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required

from app.api.posts.schemas import (
    PostCreateSchema, PostUpdateSchema, PostListQuerySchema,
    PostResponseSchema, ReactionToggleResponseSchema, ReactionResponseSchema,
)
from app.core.context import caller_from_jwt
from app.services.storage_service import UploadedFile


posts_bp = Blueprint('posts_bp', __name__)


@posts_bp.route('', methods=['POST'])
@jwt_required()
def create_post():
    """
    새로운 게시글을 생성합니다.
    - 요청 폼은 PostCreateSchema에 따라 유효성을 검사합니다.
    - 성공 시, 생성된 게시글 정보를 201 Created 상태 코드와 함께 반환합니다.
    """
    post_service = current_app.services['posts']
    data = PostCreateSchema().load(request.form)
    new_post = post_service.create_post(
        caller_from_jwt(),
        category=data['category'],
        content=data['content'],
        media_file=UploadedFile.from_file_storage(request.files.get('media')),
        pinned=data['pinned'],
    )
    return jsonify(PostResponseSchema().dump(new_post)), 201


@posts_bp.route('', methods=['GET'])
@jwt_required(optional=True)
def get_posts():
    """
    게시글 피드 목록을 최신순 페이지네이션으로 조회합니다.
    """
    post_service = current_app.services['posts']
    args = PostListQuerySchema().load(request.args)
    try:
        posts, next_cursor = post_service.list_posts(args['limit'], args['cursor'])
        return jsonify({
            "posts": PostResponseSchema(many=True).dump(posts),
            "next_cursor": next_cursor
        }), 200
    except Exception as e:
        logging.error(f"게시글 목록 조회 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "게시물 목록 조회 중 오류가 발생했습니다."}), 500


@posts_bp.route('/<string:post_id>', methods=['GET'])
@jwt_required(optional=True)
def get_post(post_id: str):
    post_service = current_app.services['posts']
    return jsonify(PostResponseSchema().dump(post_service.get_post(post_id))), 200


@posts_bp.route('/<string:post_id>', methods=['PATCH'])
@jwt_required()
def update_post(post_id: str):
    """
    게시글의 내용, 카테고리, 고정 여부를 수정합니다.
    """
    post_service = current_app.services['posts']
    data = PostUpdateSchema().load(request.get_json() or {})
    updated_post = post_service.update_post(post_id, caller=caller_from_jwt(), **data)
    return jsonify(PostResponseSchema().dump(updated_post)), 200


@posts_bp.route('/<string:post_id>', methods=['DELETE'])
@jwt_required()
def delete_post(post_id: str):
    """
    게시글과 댓글/리액션, 첨부 미디어를 함께 삭제합니다.
    """
    post_service = current_app.services['posts']
    post_service.delete_post(post_id, caller_from_jwt())
    return Response(status=204)  # 성공 시 내용 없이 204 No Content 반환


@posts_bp.route('/<string:post_id>/reactions', methods=['POST'])
@jwt_required()
def toggle_reaction(post_id: str):
    """
    게시글 리액션을 누르거나 취소합니다.
    """
    post_service = current_app.services['posts']
    result = post_service.toggle_reaction(post_id, caller_from_jwt())
    return jsonify(ReactionToggleResponseSchema().dump(result)), 200


@posts_bp.route('/<string:post_id>/reactions', methods=['GET'])
@jwt_required(optional=True)
def get_reactions(post_id: str):
    post_service = current_app.services['posts']
    reactions = post_service.list_reactions(post_id)
    return jsonify({"reactions": ReactionResponseSchema(many=True).dump(reactions)}), 200
