"""
Landmark repository backed by SQLAlchemy/SQLite.

Rows are returned in the same shape the hosted landmark store uses
(``_id``, ``title``, ``description``, ``latitude``, ``longitude``,
``source``, ``timestamp``) so both stores are interchangeable.
"""
import uuid
from typing import List, Optional
from sqlalchemy.orm import Session

from repositories.models import LandmarkORM

MIN_RELEVANCE_SCORE = 0.4


def _row_from_orm(orm: LandmarkORM) -> dict:
    return {
        "_id": orm.id,
        "title": orm.title,
        "description": orm.description or "",
        "latitude": orm.latitude,
        "longitude": orm.longitude,
        "source": orm.source,
        "timestamp": orm.timestamp,
    }


def word_overlap_similarity(text1: str, text2: str) -> float:
    """
    Share of words in the longer text matched by a word of the other.

    Words shorter than three characters never match; a word matches when it is
    equal to, or contained in, a word of the other text.
    """
    words1 = text1.lower().split()
    words2 = text2.lower().split()
    matches = 0
    for w1 in words1:
        if len(w1) < 3:
            continue
        for w2 in words2:
            if len(w2) < 3:
                continue
            if w1 == w2 or w1 in w2 or w2 in w1:
                matches += 1
                break
    max_words = max(len(words1), len(words2))
    return matches / max_words if max_words else 0.0


def relevance_score(query: str, title: str, description: str) -> float:
    query_lower = query.lower()
    score = max(
        word_overlap_similarity(query, title),
        word_overlap_similarity(query, description),
    )
    if query_lower and query_lower in title.lower():
        score += 0.2
    if query_lower and query_lower in description.lower():
        score += 0.1
    return score


class LandmarksRepository:
    """CRUD and relevance search over cached landmarks."""

    def search(self, session: Session, query: str) -> List[dict]:
        scored = []
        for orm in session.query(LandmarkORM).all():
            score = relevance_score(query, orm.title, orm.description or "")
            if score >= MIN_RELEVANCE_SCORE:
                scored.append((score, orm))
        scored.sort(key=lambda item: item[0], reverse=True)
        return [_row_from_orm(orm) for _, orm in scored]

    def list_all(self, session: Session) -> List[dict]:
        rows = session.query(LandmarkORM).order_by(LandmarkORM.created_at.desc()).all()
        return [_row_from_orm(r) for r in rows]

    def get(self, session: Session, landmark_id: str) -> Optional[dict]:
        orm = session.get(LandmarkORM, landmark_id)
        return _row_from_orm(orm) if orm else None

    def create(self, session: Session, data: dict) -> str:
        orm = LandmarkORM(
            id=uuid.uuid4().hex,
            title=data["title"],
            description=data.get("description", ""),
            latitude=data["latitude"],
            longitude=data["longitude"],
            source=data["source"],
            timestamp=data["timestamp"],
        )
        session.add(orm)
        session.commit()
        return orm.id

    def update(self, session: Session, landmark_id: str, data: dict) -> str:
        orm = session.get(LandmarkORM, landmark_id)
        if not orm:
            raise ValueError("Landmark not found")
        for key in ("title", "description", "latitude", "longitude", "source", "timestamp"):
            if key in data:
                setattr(orm, key, data[key])
        session.add(orm)
        session.commit()
        return orm.id

    def delete(self, session: Session, landmark_id: str) -> None:
        orm = session.get(LandmarkORM, landmark_id)
        if not orm:
            raise ValueError("Landmark not found")
        session.delete(orm)
        session.commit()
