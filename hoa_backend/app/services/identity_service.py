# app/services/identity_service.py
import logging
from typing import Optional

from app.models.member import Member

DEFAULT_DISPLAY_NAME = "HOA Member"
DEFAULT_ADMIN_LABEL = "Admin"


class IdentityService:
    """
    uid로 관리자/회원 문서를 조회하여 게시글·댓글·리액션에 표시될 이름을 결정합니다.
    관리자와 일반 회원이 같은 상호작용 로직을 공유할 수 있도록 이름 결정 규칙을 한 곳에 둡니다.
    """

    def __init__(self, store):
        self.admin_ref = store.collection('admin')
        self.members_ref = store.collection('members')

    def resolve_display_name(self, user_id: str, fallback: Optional[str] = None) -> str:
        """
        표시 이름 결정 우선순위:
        1. admin/{uid} 문서가 있으면 그 역할(role) 라벨
        2. members/{uid} 문서가 있으면 이름 필드를 이어 붙인 값
        3. 호출자가 넘긴 fallback, 그것도 비어 있으면 기본 문자열
        """
        try:
            admin_doc = self.admin_ref.document(user_id).get()
            if admin_doc.exists:
                return (admin_doc.to_dict() or {}).get('role') or DEFAULT_ADMIN_LABEL

            member_doc = self.members_ref.document(user_id).get()
            if member_doc.exists:
                name = Member.from_firestore(member_doc.id, member_doc.to_dict() or {}).display_name
                if name:
                    return name
        except Exception as e:
            logging.error(f"표시 이름 조회 실패 (user_id: {user_id}): {e}", exc_info=True)

        return (fallback or '').strip() or DEFAULT_DISPLAY_NAME
