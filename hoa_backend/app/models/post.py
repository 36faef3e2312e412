# app/models/post.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any

from app.utils.datetime_utils import DateTimeUtils


@dataclass
class Post:
    """
    Firestore 'posts' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    comments_count / reacts_count는 하위 컬렉션 문서 수의 캐시이며,
    댓글/리액션 트랜잭션 안에서만 변경됩니다.
    """
    post_id: str
    author_id: str
    author_name: str
    category: str
    content: str
    author_photo_url: Optional[str] = None
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    media_path: Optional[str] = None
    comments_count: int = 0
    reacts_count: int = 0
    pinned: bool = False
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)

    def to_firestore(self) -> Dict[str, Any]:
        return DateTimeUtils.for_firestore({
            'authorId': self.author_id,
            'authorName': self.author_name,
            'authorPhotoUrl': self.author_photo_url,
            'category': self.category,
            'content': self.content,
            'mediaUrl': self.media_url,
            'mediaType': self.media_type,
            'mediaPath': self.media_path,
            'commentsCount': self.comments_count,
            'reactsCount': self.reacts_count,
            'pinned': self.pinned,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        })

    @classmethod
    def from_firestore(cls, doc_id: str, data: Dict[str, Any]) -> 'Post':
        created_at = DateTimeUtils.from_firestore(data.get('createdAt')) or DateTimeUtils.now()
        return cls(
            post_id=doc_id,
            author_id=str(data.get('authorId') or ''),
            author_name=str(data.get('authorName') or ''),
            category=str(data.get('category') or ''),
            content=str(data.get('content') or ''),
            author_photo_url=data.get('authorPhotoUrl') or None,
            media_url=data.get('mediaUrl') or None,
            media_type=data.get('mediaType') or None,
            media_path=data.get('mediaPath') or None,
            comments_count=max(0, int(data.get('commentsCount') or 0)),
            reacts_count=max(0, int(data.get('reactsCount') or 0)),
            pinned=bool(data.get('pinned', False)),
            created_at=created_at,
            updated_at=DateTimeUtils.from_firestore(data.get('updatedAt')) or created_at,
        )
