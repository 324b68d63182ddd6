"""
Query surface for the hosted backend's tables.

Three implementations share the `DbClient` protocol: an in-memory one for
development and tests, a SQLAlchemy one for a direct Postgres connection, and
a REST one speaking PostgREST to the hosted provider.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

import requests
from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from gallery.errors import BackendError

logger = logging.getLogger(__name__)

IMAGES_TABLE = "images"
CAPTIONS_TABLE = "captions"
VOTES_TABLE = "caption_votes"


class DbClient(Protocol):
    """Interface for the three gallery tables."""

    def for_token(self, access_token: Optional[str]) -> "DbClient":
        ...

    def list_images(self, limit: int = 20) -> list["ImageRecord"]:
        ...

    def list_captions(self) -> list["CaptionRecord"]:
        ...

    def list_votes(self) -> list["VoteRecord"]:
        ...

    def get_vote(self, profile_id: str, caption_id: str) -> Optional["VoteRecord"]:
        ...

    def insert_vote(
        self, profile_id: str, caption_id: str, vote_value: int
    ) -> "VoteRecord":
        ...

    def update_vote(self, vote_id: str, vote_value: int) -> None:
        ...

    def delete_vote(self, vote_id: str) -> None:
        ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ImageRecord:
    id: str
    url: Optional[str] = None
    created_at: Optional[str] = None
    created_at_utc: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "ImageRecord":
        return cls(
            id=str(row["id"]),
            url=row.get("url"),
            created_at=row.get("created_at"),
            created_at_utc=row.get("created_at_utc"),
        )


@dataclass
class CaptionRecord:
    id: str
    image_id: str
    profile_id: Optional[str] = None
    text: Optional[str] = None
    caption_text: Optional[str] = None
    content: Optional[str] = None
    created_at: Optional[str] = None
    created_at_utc: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "CaptionRecord":
        return cls(
            id=str(row["id"]),
            image_id=str(row["image_id"]),
            profile_id=row.get("profile_id"),
            text=row.get("text"),
            caption_text=row.get("caption_text"),
            content=row.get("content"),
            created_at=row.get("created_at"),
            created_at_utc=row.get("created_at_utc"),
        )


@dataclass
class VoteRecord:
    id: str
    caption_id: str
    profile_id: str
    vote_value: int
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "VoteRecord":
        return cls(
            id=str(row["id"]),
            caption_id=str(row["caption_id"]),
            profile_id=str(row["profile_id"]),
            vote_value=int(row["vote_value"]),
            created_at=row.get("created_at"),
        )


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.images: Dict[str, ImageRecord] = {}
        self.captions: Dict[str, CaptionRecord] = {}
        self.votes: Dict[str, VoteRecord] = {}
        self._lock = threading.Lock()

    def for_token(self, access_token: Optional[str]) -> "InMemoryDbClient":
        return self

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.images.clear()
            self.captions.clear()
            self.votes.clear()

    def add_image(
        self, url: str, created_at: str | None = None, image_id: str | None = None
    ) -> ImageRecord:
        record = ImageRecord(
            id=image_id or uuid.uuid4().hex,
            url=url,
            created_at=created_at or _now_iso(),
        )
        self.images[record.id] = record
        return record

    def add_caption(
        self,
        image_id: str,
        content: str,
        profile_id: str | None = None,
        caption_id: str | None = None,
    ) -> CaptionRecord:
        record = CaptionRecord(
            id=caption_id or uuid.uuid4().hex,
            image_id=image_id,
            profile_id=profile_id,
            content=content,
            created_at=_now_iso(),
        )
        self.captions[record.id] = record
        return record

    def list_images(self, limit: int = 20) -> list[ImageRecord]:
        return list(self.images.values())[:limit]

    def list_captions(self) -> list[CaptionRecord]:
        return list(self.captions.values())

    def list_votes(self) -> list[VoteRecord]:
        with self._lock:
            return list(self.votes.values())

    def get_vote(self, profile_id: str, caption_id: str) -> Optional[VoteRecord]:
        with self._lock:
            for vote in self.votes.values():
                if vote.profile_id == profile_id and vote.caption_id == caption_id:
                    return vote
        return None

    def insert_vote(
        self, profile_id: str, caption_id: str, vote_value: int
    ) -> VoteRecord:
        record = VoteRecord(
            id=uuid.uuid4().hex,
            caption_id=caption_id,
            profile_id=profile_id,
            vote_value=vote_value,
            created_at=_now_iso(),
        )
        with self._lock:
            self.votes[record.id] = record
        return record

    def update_vote(self, vote_id: str, vote_value: int) -> None:
        with self._lock:
            vote = self.votes.get(vote_id)
            if vote:
                vote.vote_value = vote_value

    def delete_vote(self, vote_id: str) -> None:
        with self._lock:
            self.votes.pop(vote_id, None)


Base = declarative_base()


class ImageRow(Base):
    __tablename__ = IMAGES_TABLE

    id = Column(String(64), primary_key=True)
    url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True)


class CaptionRow(Base):
    __tablename__ = CAPTIONS_TABLE

    id = Column(String(64), primary_key=True)
    image_id = Column(String(64), index=True, nullable=False)
    content = Column(Text, nullable=True)
    profile_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True)


class VoteRow(Base):
    __tablename__ = VOTES_TABLE

    id = Column(String(64), primary_key=True)
    caption_id = Column(String(64), index=True, nullable=False)
    profile_id = Column(String(64), index=True, nullable=False)
    vote_value = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=True)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., the
    provider's Postgres, or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def for_token(self, access_token: Optional[str]) -> "PostgresDbClient":
        return self

    def add_image(
        self,
        url: str,
        created_at: datetime | None = None,
        image_id: str | None = None,
    ) -> ImageRecord:
        row = ImageRow(
            id=image_id or uuid.uuid4().hex,
            url=url,
            created_at=created_at or datetime.now(timezone.utc),
        )
        with self._session() as session:
            session.add(row)
            session.commit()
            return self._to_image_record(row)

    def add_caption(
        self,
        image_id: str,
        content: str,
        profile_id: str | None = None,
        caption_id: str | None = None,
    ) -> CaptionRecord:
        row = CaptionRow(
            id=caption_id or uuid.uuid4().hex,
            image_id=image_id,
            content=content,
            profile_id=profile_id,
            created_at=datetime.now(timezone.utc),
        )
        with self._session() as session:
            session.add(row)
            session.commit()
            return self._to_caption_record(row)

    def _session(self) -> Session:
        return self.Session()

    def _to_image_record(self, row: ImageRow) -> ImageRecord:
        return ImageRecord(id=row.id, url=row.url, created_at=_iso(row.created_at))

    def _to_caption_record(self, row: CaptionRow) -> CaptionRecord:
        return CaptionRecord(
            id=row.id,
            image_id=row.image_id,
            profile_id=row.profile_id,
            content=row.content,
            created_at=_iso(row.created_at),
        )

    def _to_vote_record(self, row: VoteRow) -> VoteRecord:
        return VoteRecord(
            id=row.id,
            caption_id=row.caption_id,
            profile_id=row.profile_id,
            vote_value=row.vote_value,
            created_at=_iso(row.created_at),
        )

    def list_images(self, limit: int = 20) -> list[ImageRecord]:
        try:
            with self._session() as session:
                rows = session.execute(select(ImageRow).limit(limit)).scalars()
                return [self._to_image_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise BackendError(f"Failed to load images: {exc}") from exc

    def list_captions(self) -> list[CaptionRecord]:
        try:
            with self._session() as session:
                rows = session.execute(select(CaptionRow)).scalars()
                return [self._to_caption_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise BackendError(f"Failed to load captions: {exc}") from exc

    def list_votes(self) -> list[VoteRecord]:
        try:
            with self._session() as session:
                rows = session.execute(select(VoteRow)).scalars()
                return [self._to_vote_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise BackendError(f"Failed to load votes: {exc}") from exc

    def get_vote(self, profile_id: str, caption_id: str) -> Optional[VoteRecord]:
        stmt = (
            select(VoteRow)
            .where(VoteRow.profile_id == profile_id)
            .where(VoteRow.caption_id == caption_id)
            .limit(1)
        )
        try:
            with self._session() as session:
                row = session.execute(stmt).scalar_one_or_none()
                return self._to_vote_record(row) if row else None
        except SQLAlchemyError as exc:
            raise BackendError(f"Failed to load vote: {exc}") from exc

    def insert_vote(
        self, profile_id: str, caption_id: str, vote_value: int
    ) -> VoteRecord:
        row = VoteRow(
            id=uuid.uuid4().hex,
            caption_id=caption_id,
            profile_id=profile_id,
            vote_value=vote_value,
            created_at=datetime.now(timezone.utc),
        )
        try:
            with self._session() as session:
                session.add(row)
                session.commit()
                return self._to_vote_record(row)
        except SQLAlchemyError as exc:
            raise BackendError(f"Failed to insert vote: {exc}") from exc

    def update_vote(self, vote_id: str, vote_value: int) -> None:
        try:
            with self._session() as session:
                row = session.get(VoteRow, vote_id)
                if not row:
                    return
                row.vote_value = vote_value
                session.commit()
        except SQLAlchemyError as exc:
            raise BackendError(f"Failed to update vote: {exc}") from exc

    def delete_vote(self, vote_id: str) -> None:
        try:
            with self._session() as session:
                row = session.get(VoteRow, vote_id)
                if row:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as exc:
            raise BackendError(f"Failed to delete vote: {exc}") from exc


class RestDbClient:
    """
    PostgREST client for the hosted provider. Requests carry the public key as
    `apikey` and, once signed in, the user's access token so row-level
    policies apply.
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        if not base_url or not anon_key:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY are required")
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.access_token = access_token
        self.timeout = timeout
        self.http = session or requests.Session()

    def for_token(self, access_token: Optional[str]) -> "RestDbClient":
        return RestDbClient(
            self.base_url,
            self.anon_key,
            access_token=access_token,
            timeout=self.timeout,
            session=self.http,
        )

    def _headers(self, prefer: Optional[str] = None) -> dict:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[dict] = None,
        json_body: Any = None,
        prefer: Optional[str] = None,
    ) -> List[dict]:
        url = f"{self.base_url}/rest/v1/{table}"
        try:
            response = self.http.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._headers(prefer),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Backend request %s %s failed: %s", method, table, exc)
            raise BackendError(f"{method} {table} failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            detail = payload.get("message") if isinstance(payload, dict) else None
            detail = detail or response.text
            logger.warning(
                "Backend request %s %s returned %s: %s",
                method,
                table,
                response.status_code,
                detail,
            )
            raise BackendError(
                f"{method} {table} failed: {detail}", status_code=response.status_code
            )
        if not response.content:
            return []
        try:
            rows = response.json()
        except ValueError as exc:
            raise BackendError(f"{method} {table} returned invalid JSON") from exc
        if not isinstance(rows, list):
            raise BackendError(f"{method} {table} returned an unexpected payload")
        return rows

    @staticmethod
    def _convert(table: str, rows: List[dict], from_row) -> list:
        try:
            return [from_row(row) for row in rows]
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed %s row: %r", table, exc)
            raise BackendError(f"Malformed {table} row: {exc!r}") from exc

    def list_images(self, limit: int = 20) -> list[ImageRecord]:
        rows = self._request("GET", IMAGES_TABLE, params={"select": "*", "limit": limit})
        return self._convert(IMAGES_TABLE, rows, ImageRecord.from_row)

    def list_captions(self) -> list[CaptionRecord]:
        rows = self._request("GET", CAPTIONS_TABLE, params={"select": "*"})
        return self._convert(CAPTIONS_TABLE, rows, CaptionRecord.from_row)

    def list_votes(self) -> list[VoteRecord]:
        rows = self._request("GET", VOTES_TABLE, params={"select": "*"})
        return self._convert(VOTES_TABLE, rows, VoteRecord.from_row)

    def get_vote(self, profile_id: str, caption_id: str) -> Optional[VoteRecord]:
        rows = self._request(
            "GET",
            VOTES_TABLE,
            params={
                "select": "*",
                "profile_id": f"eq.{profile_id}",
                "caption_id": f"eq.{caption_id}",
                "limit": 1,
            },
        )
        if not rows:
            return None
        return self._convert(VOTES_TABLE, rows[:1], VoteRecord.from_row)[0]

    def insert_vote(
        self, profile_id: str, caption_id: str, vote_value: int
    ) -> VoteRecord:
        rows = self._request(
            "POST",
            VOTES_TABLE,
            json_body={
                "profile_id": profile_id,
                "caption_id": caption_id,
                "vote_value": vote_value,
            },
            prefer="return=representation",
        )
        if not rows:
            raise BackendError("Insert into caption_votes returned no row")
        return self._convert(VOTES_TABLE, rows[:1], VoteRecord.from_row)[0]

    def update_vote(self, vote_id: str, vote_value: int) -> None:
        self._request(
            "PATCH",
            VOTES_TABLE,
            params={"id": f"eq.{vote_id}"},
            json_body={"vote_value": vote_value},
        )

    def delete_vote(self, vote_id: str) -> None:
        self._request("DELETE", VOTES_TABLE, params={"id": f"eq.{vote_id}"})
