"""Data model – threads, posts, media records and analysis results.

Field names on the wire and on disk follow the imageboard API (``no``,
``resto``, ``com``, ``tim``...), so snapshot files stay readable by anything
that already understands that format.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

ANONYMOUS = "Anonymous"


class MediaCategory(str, Enum):
    OP = "OP"
    RANDOM = "RANDOM"


@dataclass
class Post:
    no: int
    resto: int = 0
    time: int = 0
    name: str = ANONYMOUS
    com: str = ""
    now: str | None = None
    tim: int | None = None
    ext: str | None = None
    filename: str | None = None
    fsize: int = 0
    w: int = 0
    h: int = 0

    @property
    def is_op(self) -> bool:
        return self.resto == 0

    @property
    def has_media(self) -> bool:
        return bool(self.tim and self.ext)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Post:
        return cls(
            no=int(data["no"]),
            resto=int(data.get("resto", 0) or 0),
            time=int(data.get("time", 0) or 0),
            name=data.get("name") or ANONYMOUS,
            com=data.get("com") or "",
            now=data.get("now"),
            tim=data.get("tim"),
            ext=data.get("ext"),
            filename=data.get("filename"),
            fsize=int(data.get("fsize", 0) or 0),
            w=int(data.get("w", 0) or 0),
            h=int(data.get("h", 0) or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class Thread:
    """A materialized thread: origin post fields plus the ordered replies."""
    no: int
    time: int
    now: str
    name: str = ANONYMOUS
    com: str = ""
    sub: str | None = None
    tim: int | None = None
    ext: str | None = None
    filename: str | None = None
    fsize: int = 0
    w: int = 0
    h: int = 0
    replies: int = 0
    images: int = 0
    posts: list[Post] = field(default_factory=list)
    last_modified: float = 0.0

    @property
    def has_media(self) -> bool:
        return bool(self.tim and self.ext)

    def origin_post(self) -> Post:
        return Post(
            no=self.no,
            resto=0,
            time=self.time,
            name=self.name,
            com=self.com,
            now=self.now,
            tim=self.tim,
            ext=self.ext,
            filename=self.filename,
            fsize=self.fsize,
            w=self.w,
            h=self.h,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Thread:
        return cls(
            no=int(data["no"]),
            time=int(data.get("time", 0) or 0),
            now=data.get("now") or "",
            name=data.get("name") or ANONYMOUS,
            com=data.get("com") or "",
            sub=data.get("sub"),
            tim=data.get("tim"),
            ext=data.get("ext"),
            filename=data.get("filename"),
            fsize=int(data.get("fsize", 0) or 0),
            w=int(data.get("w", 0) or 0),
            h=int(data.get("h", 0) or 0),
            replies=int(data.get("replies", 0) or 0),
            images=int(data.get("images", 0) or 0),
            posts=[Post.from_dict(p) for p in data.get("posts", [])],
            last_modified=float(data.get("lastModified", data.get("last_modified", 0)) or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "no": self.no,
            "resto": 0,
            "time": self.time,
            "now": self.now,
            "name": self.name,
            "com": self.com,
            "sub": self.sub,
            "tim": self.tim,
            "ext": self.ext,
            "filename": self.filename,
            "fsize": self.fsize,
            "w": self.w,
            "h": self.h,
            "replies": self.replies,
            "images": self.images,
            "posts": [p.to_dict() for p in self.posts],
            "lastModified": self.last_modified,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class CatalogEntry:
    """Thread summary as listed on a catalog page."""
    no: int
    replies: int = 0
    images: int = 0
    time: int = 0
    tim: int | None = None
    ext: str | None = None
    sticky: bool = False
    closed: bool = False
    sub: str | None = None
    com: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CatalogEntry:
        return cls(
            no=int(data["no"]),
            replies=int(data.get("replies", 0) or 0),
            images=int(data.get("images", 0) or 0),
            time=int(data.get("time", 0) or 0),
            tim=data.get("tim"),
            ext=data.get("ext"),
            sticky=bool(data.get("sticky", 0)),
            closed=bool(data.get("closed", 0)),
            sub=data.get("sub"),
            com=data.get("com"),
        )


@dataclass(frozen=True)
class MediaFile:
    filename: str
    stored_name: str
    category: MediaCategory
    thread_id: int
    post_id: int
    content_hash: str
    file_size: int
    width: int
    height: int
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "storedName": self.stored_name,
            "category": self.category.value,
            "threadId": self.thread_id,
            "postId": self.post_id,
            "hash": self.content_hash,
            "fileSize": self.file_size,
            "width": self.width,
            "height": self.height,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class CategoryStats:
    category: MediaCategory
    file_count: int
    total_size: int
    last_updated: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "fileCount": self.file_count,
            "totalSize": self.total_size,
            "lastUpdated": self.last_updated,
        }


@dataclass(frozen=True)
class TermMention:
    post_id: int
    thread_id: int
    comment: str
    timestamp: int
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "postId": self.post_id,
            "threadId": self.thread_id,
            "comment": self.comment,
            "timestamp": self.timestamp,
            "name": self.name,
        }


@dataclass
class TermMentionResult:
    term: str
    mentions: list[TermMention]
    total_posts_analyzed: int
    posts_with_term: int
    last_analysis: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.last_analysis,
            "term": self.term,
            "medsPosts": [m.to_dict() for m in self.mentions],
            "metadata": {
                "totalPostsAnalyzed": self.total_posts_analyzed,
                "postsWithMeds": self.posts_with_term,
                "lastAnalysis": self.last_analysis,
            },
        }


@dataclass(frozen=True)
class TrendPoint:
    """One retained sample of the aggregate delusional percentage."""
    timestamp: int
    percentage: float
    thread_count: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrendPoint:
        return cls(
            timestamp=int(data["timestamp"]),
            percentage=float(data.get("percentage", 0.0)),
            thread_count=int(data.get("threadCount", data.get("thread_count", 0))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "percentage": self.percentage,
            "threadCount": self.thread_count,
        }


@dataclass(frozen=True)
class ArticleStats:
    analyzed_comments: int
    delusional_comments: int
    percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "analyzedComments": self.analyzed_comments,
            "delusionalComments": self.delusional_comments,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class ArticleAnalysis:
    thread_id: int
    headline: str
    article: str
    stats: ArticleStats
    generated_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "threadId": str(self.thread_id),
            "headline": self.headline,
            "article": self.article,
            "delusionalStats": self.stats.to_dict(),
            "generatedAt": self.generated_at,
        }


@dataclass(frozen=True)
class DelusionalStatistics:
    mean: float
    median: float
    total_analyzed: int
    total_delusional: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "mean": self.mean,
            "median": self.median,
            "totalAnalyzed": self.total_analyzed,
            "totalDelusional": self.total_delusional,
        }


@dataclass(frozen=True)
class DelusionalTheme:
    name: str
    frequency: float
    keywords: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "frequency": self.frequency,
            "keywords": list(self.keywords),
            "examples": [],
        }
