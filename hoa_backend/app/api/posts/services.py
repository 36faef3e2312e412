# app/api/posts/services.py
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from firebase_admin import firestore

from app.core.context import CallerContext
from app.core.errors import CascadeCleanupError, PostNotFoundError, ValidationError
from app.models.comment import Reaction
from app.models.post import Post
from app.services.firestore_service import commit_in_batches
from app.services.identity_service import IdentityService
from app.services.storage_service import StorageService, UploadedFile, media_type_for
from app.utils.datetime_utils import DateTimeUtils

logger = logging.getLogger(__name__)

DEFAULT_POST_CATEGORIES = ('announcement', 'news', 'event', 'reminder', 'general')


@dataclass
class ReactionToggleResult:
    """토글 후 호출자의 리액션 상태와 트랜잭션이 기록한 reactsCount"""
    reacted: bool
    reacts_count: int


class PostService:
    """
    게시글 관련 비즈니스 로직을 담당하는 서비스 클래스.
    reactsCount / commentsCount는 toggle_reaction과 CommentService.add_comment의
    트랜잭션에서만 변경되며, 이 클래스의 다른 메서드는 두 필드를 쓰지 않습니다.
    """

    def __init__(self, store, storage_service: StorageService, identity_service: IdentityService,
                 categories: Sequence[str] = DEFAULT_POST_CATEGORIES):
        self.store = store
        self.storage_service = storage_service
        self.identity_service = identity_service
        self.categories = tuple(c.lower() for c in categories)
        self.posts_ref = store.collection('posts')

    def _normalize_category(self, category: Optional[str]) -> str:
        category = (category or '').strip().lower()
        if category not in self.categories:
            raise ValidationError(
                f"알 수 없는 카테고리입니다: '{category}'",
                details={"allowed": list(self.categories)},
            )
        return category

    def _discard_blob(self, path: str) -> None:
        try:
            self.storage_service.delete(path)
        except Exception as e:
            logger.error(f"고아 Blob 정리 실패 (path: {path}): {e}", exc_info=True)

    # --- 게시글 CRUD ---

    def create_post(self, caller: CallerContext, category: str, content: str,
                    media_file: Optional[UploadedFile] = None, pinned: bool = False) -> Post:
        """새로운 게시글을 생성합니다. 미디어가 있으면 먼저 업로드하고 카운터는 0으로 시작합니다."""
        category = self._normalize_category(category)
        content = (content or '').strip()
        if not content and media_file is None:
            raise ValidationError("게시글 내용 또는 첨부 파일 중 하나는 필요합니다.")

        author_name = self.identity_service.resolve_display_name(caller.uid, caller.display_name)

        media_url = media_type = media_path = None
        if media_file is not None:
            media_type = media_type_for(media_file.content_type)
            media_path = self.storage_service.post_media_path(caller.uid, media_type, media_file.filename)
            media_url = self.storage_service.upload(media_path, media_file)

        doc_ref = self.posts_ref.document()
        post = Post(
            post_id=doc_ref.id,
            author_id=caller.uid,
            author_name=author_name,
            author_photo_url=caller.photo_url,
            category=category,
            content=content,
            media_url=media_url,
            media_type=media_type,
            media_path=media_path,
            pinned=bool(pinned),
        )
        try:
            doc_ref.set(post.to_firestore())
        except Exception as e:
            logger.error(f"게시글 생성 실패 (user_id: {caller.uid}): {e}", exc_info=True)
            if media_path:
                self._discard_blob(media_path)
            raise

        logger.info(f"게시글 생성: {post.post_id} (author: {caller.uid}, category: {category})")
        return post

    def get_post(self, post_id: str) -> Post:
        doc = self.posts_ref.document(post_id).get()
        if not doc.exists:
            raise PostNotFoundError("게시글을 찾을 수 없습니다.", details={"post_id": post_id})
        return Post.from_firestore(doc.id, doc.to_dict() or {})

    def list_posts(self, limit: int = 20, cursor: Optional[str] = None) -> Tuple[List[Post], Optional[str]]:
        """최신순으로 게시글을 조회합니다. 다음 페이지가 있을 수 있으면 마지막 문서 id를 커서로 반환합니다."""
        query = self.posts_ref.order_by('createdAt', direction=firestore.Query.DESCENDING)
        if cursor:
            cursor_doc = self.posts_ref.document(cursor).get()
            if cursor_doc.exists:
                query = query.start_after(cursor_doc)

        posts = [Post.from_firestore(doc.id, doc.to_dict() or {}) for doc in query.limit(limit).stream()]
        next_cursor = posts[-1].post_id if len(posts) == limit else None
        return posts, next_cursor

    def update_post(self, post_id: str, content: Optional[str] = None, category: Optional[str] = None,
                    pinned: Optional[bool] = None, caller: Optional[CallerContext] = None) -> Post:
        """내용/카테고리/고정 여부만 수정합니다."""
        update_data: Dict[str, Any] = {}
        if content is not None:
            content = content.strip()
            if not content:
                raise ValidationError("게시글 내용은 비어 있을 수 없습니다.")
            update_data['content'] = content
        if category is not None:
            update_data['category'] = self._normalize_category(category)
        if pinned is not None:
            update_data['pinned'] = bool(pinned)

        post_ref = self.posts_ref.document(post_id)
        if not post_ref.get().exists:
            raise PostNotFoundError("게시글을 찾을 수 없습니다.", details={"post_id": post_id})

        if update_data:
            update_data['updatedAt'] = DateTimeUtils.now()
            post_ref.update(update_data)
            logger.info(f"게시글 수정: {post_id} ({', '.join(sorted(update_data))}, by: {caller.uid if caller else 'system'})")
        return self.get_post(post_id)

    def delete_post(self, post_id: str, caller: Optional[CallerContext] = None) -> None:
        """
        게시글과 하위 댓글/리액션 문서, 첨부 미디어를 삭제합니다.
        하위 문서나 미디어 정리에 실패해도 예외를 전파하지 않고 로그만 남깁니다.
        """
        post = self.get_post(post_id)
        post_ref = self.posts_ref.document(post_id)

        try:
            operations = [
                ('delete', doc.reference)
                for sub in ('comments', 'reacts')
                for doc in post_ref.collection(sub).stream()
            ]
            deleted = commit_in_batches(self.store, operations)
            logger.info(f"게시글 하위 문서 삭제: {post_id} ({deleted}건)")
        except Exception as e:
            self._log_cleanup_failure("하위 문서 삭제 실패", post_id, e)

        post_ref.delete()
        logger.info(f"게시글 삭제: {post_id} (by: {caller.uid if caller else 'system'})")

        media_path = post.media_path or self.storage_service.path_from_url(post.media_url)
        if media_path:
            try:
                self.storage_service.delete(media_path)
            except Exception as e:
                self._log_cleanup_failure(f"미디어 삭제 실패 ({media_path})", post_id, e)

    @staticmethod
    def _log_cleanup_failure(message: str, post_id: str, cause: Exception) -> None:
        error = CascadeCleanupError(f"{message}: {cause}", details={"post_id": post_id})
        logger.error(f"[{error.error_code}] {error.message} (post_id: {post_id})", exc_info=True)

    # --- 리액션 ---

    def _toggle_reaction_in_transaction(self, transaction, post_id: str, caller: CallerContext,
                                        author_name: str) -> ReactionToggleResult:
        """
        트랜잭션 안에서 게시글과 리액션 문서를 읽고 상태를 뒤집습니다.
        재시도될 때마다 다시 읽으므로 같은 호출이 두 번 반영되지 않습니다.
        """
        post_ref = self.posts_ref.document(post_id)
        react_ref = post_ref.collection('reacts').document(caller.uid)

        post_doc = post_ref.get(transaction=transaction)
        react_doc = react_ref.get(transaction=transaction)

        if not post_doc.exists:
            raise PostNotFoundError("게시글을 찾을 수 없습니다.", details={"post_id": post_id})
        current = max(0, int((post_doc.to_dict() or {}).get('reactsCount') or 0))

        if react_doc.exists:
            transaction.delete(react_ref)
            transaction.update(post_ref, {'reactsCount': firestore.Increment(-1) if current > 0 else 0})
            return ReactionToggleResult(reacted=False, reacts_count=max(0, current - 1))

        reaction = Reaction(user_id=caller.uid, author_name=author_name, photo_url=caller.photo_url)
        transaction.set(react_ref, reaction.to_firestore())
        transaction.update(post_ref, {'reactsCount': firestore.Increment(1)})
        return ReactionToggleResult(reacted=True, reacts_count=current + 1)

    def toggle_reaction(self, post_id: str, caller: CallerContext) -> ReactionToggleResult:
        """게시글 리액션을 누르거나 취소합니다."""
        author_name = self.identity_service.resolve_display_name(caller.uid, caller.display_name)
        try:
            result = self.store.run_transaction(self._toggle_reaction_in_transaction, post_id, caller, author_name)
        except Exception as e:
            logger.error(f"리액션 토글 실패 (user_id: {caller.uid}, post_id: {post_id}): {e}", exc_info=True)
            raise

        logger.info(
            f"리액션 {'추가' if result.reacted else '취소'}: {post_id} "
            f"(user: {caller.uid}, reactsCount: {result.reacts_count})"
        )
        return result

    def list_reactions(self, post_id: str) -> List[Reaction]:
        post_ref = self.posts_ref.document(post_id)
        if not post_ref.get().exists:
            raise PostNotFoundError("게시글을 찾을 수 없습니다.", details={"post_id": post_id})
        docs = post_ref.collection('reacts').order_by('createdAt').stream()
        return [Reaction.from_firestore(doc.id, doc.to_dict() or {}) for doc in docs]
