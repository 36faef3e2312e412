# app/models/comment.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any

from app.utils.datetime_utils import DateTimeUtils


@dataclass
class Comment:
    """
    'posts/{post_id}/comments' 하위 컬렉션의 문서 구조. 추가만 가능하며 수정/삭제하지 않습니다.
    """
    comment_id: str
    post_id: str
    user_id: str
    author_name: str
    content: str
    photo_url: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    def to_firestore(self) -> Dict[str, Any]:
        return DateTimeUtils.for_firestore({
            'userId': self.user_id,
            'authorName': self.author_name,
            'content': self.content,
            'photoUrl': self.photo_url,
            'createdAt': self.created_at,
        })

    @classmethod
    def from_firestore(cls, post_id: str, doc_id: str, data: Dict[str, Any]) -> 'Comment':
        return cls(
            comment_id=doc_id,
            post_id=post_id,
            user_id=str(data.get('userId') or ''),
            author_name=str(data.get('authorName') or ''),
            content=str(data.get('content') or ''),
            photo_url=data.get('photoUrl') or None,
            created_at=DateTimeUtils.from_firestore(data.get('createdAt')) or DateTimeUtils.now(),
        )


@dataclass
class Reaction:
    """
    'posts/{post_id}/reacts/{user_id}' 문서 구조.
    문서가 존재하는 것 자체가 '좋아요' 상태이며 별도의 boolean 필드는 없습니다.
    """
    user_id: str
    author_name: str
    photo_url: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    def to_firestore(self) -> Dict[str, Any]:
        return DateTimeUtils.for_firestore({
            'userId': self.user_id,
            'authorName': self.author_name,
            'photoUrl': self.photo_url,
            'createdAt': self.created_at,
        })

    @classmethod
    def from_firestore(cls, doc_id: str, data: Dict[str, Any]) -> 'Reaction':
        return cls(
            user_id=str(data.get('userId') or doc_id),
            author_name=str(data.get('authorName') or ''),
            photo_url=data.get('photoUrl') or None,
            created_at=DateTimeUtils.from_firestore(data.get('createdAt')) or DateTimeUtils.now(),
        )
