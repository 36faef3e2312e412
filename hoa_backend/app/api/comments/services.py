# app/api/comments/services.py

import logging
import re
import uuid
from typing import List, Optional, Tuple

from firebase_admin import firestore

from app.core.context import CallerContext
from app.core.errors import CommentIdConflictError, PostNotFoundError, ValidationError
from app.models.comment import Comment
from app.services.identity_service import IdentityService

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 2000
COMMENT_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,128}$')


class CommentService:
    """
    댓글 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 댓글은 posts/{post_id}/comments 하위 컬렉션에 추가만 되며,
      추가와 commentsCount 증가는 하나의 트랜잭션에서 함께 반영됩니다.
    """

    def __init__(self, store, identity_service: IdentityService):
        self.store = store
        self.identity_service = identity_service
        self.posts_ref = store.collection('posts')

    def _add_in_transaction(self, transaction, post_id: str, comment: Comment) -> Tuple[Comment, bool]:
        post_ref = self.posts_ref.document(post_id)
        comment_ref = post_ref.collection('comments').document(comment.comment_id)

        post_snapshot = post_ref.get(transaction=transaction)
        comment_snapshot = comment_ref.get(transaction=transaction)

        if not post_snapshot.exists:
            raise PostNotFoundError("댓글을 작성할 게시글이 존재하지 않습니다.", details={"post_id": post_id})

        # 같은 작성자가 같은 내용으로 다시 보낸 요청이면 카운터를 다시 올리지 않습니다.
        if comment_snapshot.exists:
            existing = Comment.from_firestore(post_id, comment_snapshot.id, comment_snapshot.to_dict() or {})
            if existing.user_id != comment.user_id or existing.content != comment.content:
                raise CommentIdConflictError(
                    "이미 사용된 댓글 id입니다.",
                    details={"post_id": post_id, "comment_id": comment.comment_id},
                )
            return existing, False

        transaction.set(comment_ref, comment.to_firestore())
        transaction.update(post_ref, {'commentsCount': firestore.Increment(1)})
        return comment, True

    def add_comment(self, post_id: str, caller: CallerContext, text: str,
                    comment_id: Optional[str] = None) -> Comment:
        """
        게시글에 댓글을 추가합니다.

        comment_id는 트랜잭션 시작 전에 정해지며, 클라이언트가 같은 id로 요청을 다시 보내면
        기존 댓글을 그대로 반환합니다.
        같은 id가 다른 작성자나 다른 내용으로 이미 쓰였다면 CommentIdConflictError를 발생시킵니다.
        """
        text = (text or '').strip()
        if not text:
            raise ValidationError("댓글 내용은 비어 있을 수 없습니다.")
        if len(text) > MAX_COMMENT_LENGTH:
            raise ValidationError(f"댓글은 {MAX_COMMENT_LENGTH}자 이하여야 합니다.")

        comment_id = (comment_id or '').strip()
        if comment_id and not COMMENT_ID_PATTERN.match(comment_id):
            raise ValidationError("댓글 id 형식이 올바르지 않습니다.", details={"comment_id": comment_id})

        comment = Comment(
            comment_id=comment_id or str(uuid.uuid4()),
            post_id=post_id,
            user_id=caller.uid,
            author_name=self.identity_service.resolve_display_name(caller.uid, caller.display_name),
            content=text,
            photo_url=caller.photo_url,
        )

        try:
            saved, created = self.store.run_transaction(self._add_in_transaction, post_id, comment)
        except Exception as e:
            logger.error(f"댓글 작성 실패 (post_id: {post_id}, user_id: {caller.uid}): {e}", exc_info=True)
            raise

        if created:
            logger.info(f"댓글 작성: {saved.comment_id} (post: {post_id}, user: {caller.uid})")
        else:
            logger.info(f"이미 반영된 댓글 요청: {saved.comment_id} (post: {post_id})")
        return saved

    def get_comments(self, post_id: str) -> List[Comment]:
        """게시글의 댓글을 작성 시간 오름차순으로 조회합니다."""
        post_ref = self.posts_ref.document(post_id)
        if not post_ref.get().exists:
            raise PostNotFoundError("게시글을 찾을 수 없습니다.", details={"post_id": post_id})
        docs = post_ref.collection('comments').order_by('createdAt').stream()
        return [Comment.from_firestore(post_id, doc.id, doc.to_dict() or {}) for doc in docs]
