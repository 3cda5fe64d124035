"""SQLAlchemy-backed CatalogStore (PostgreSQL in production, SQLite in tests)."""

from __future__ import annotations

import json
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, create_engine, func, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import NullPool

from catalog_api.adapters.catalog_store import new_id
from catalog_api.models.contributor import Contributor
from catalog_api.models.project import Project, ProjectBase
from catalog_api.models.tag import Tag

_PROJECT_FIELDS = ("name", "github_link", "demo_link", "description", "tech_stacks", "thumbnail")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class ProjectRecord(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    github_link: Mapped[str | None] = mapped_column(String, nullable=True)
    demo_link: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tech_stacks_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    thumbnail: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class TagRecord(Base):
    __tablename__ = "tags"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)


class ProjectTagRecord(Base):
    __tablename__ = "project_tags"
    __table_args__ = (UniqueConstraint("project_id", "tag_id", name="uq_project_tag"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[str] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    tag_id: Mapped[str] = mapped_column(ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)


class ContributorRecord(Base):
    __tablename__ = "contributors"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    source: Mapped[str] = mapped_column(String, nullable=False, default="github")
    login: Mapped[str] = mapped_column(String, nullable=False, index=True)
    avatar_url: Mapped[str | None] = mapped_column(String, nullable=True)
    profile_url: Mapped[str | None] = mapped_column(String, nullable=True)
    contributions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class ProjectContributorRecord(Base):
    __tablename__ = "project_contributors"
    __table_args__ = (UniqueConstraint("project_id", "contributor_id", name="uq_project_contributor"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[str] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    contributor_id: Mapped[str] = mapped_column(
        ForeignKey("contributors.id", ondelete="CASCADE"), nullable=False, index=True
    )


def _create_engine(url: str):
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = NullPool
    return create_engine(url, **kwargs)


def _to_project(row: ProjectRecord) -> Project:
    try:
        stacks = json.loads(row.tech_stacks_json or "[]")
    except (TypeError, json.JSONDecodeError):
        stacks = []
    return Project(
        id=row.id,
        name=row.name,
        github_link=row.github_link,
        demo_link=row.demo_link,
        description=row.description or "",
        tech_stacks=[str(s) for s in stacks] if isinstance(stacks, list) else [],
        thumbnail=row.thumbnail,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlCatalogStore:
    """CatalogStore on SQLAlchemy. Tables are created on first use."""

    def __init__(self, database_url: str | None = None) -> None:
        if not database_url:
            database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlCatalogStore")

        self.engine = _create_engine(database_url)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False)
        self._ensure_tables()

    def _ensure_tables(self) -> None:
        """Create tables if they don't exist."""
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def _session(self):
        """Get a new database session with proper cleanup."""
        session: Session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # --- projects ---

    def create_project(self, fields: ProjectBase, thumbnail: Optional[str] = None) -> Project:
        now = _now()
        row = ProjectRecord(
            id=new_id(),
            name=fields.name,
            github_link=fields.github_link,
            demo_link=fields.demo_link,
            description=fields.description,
            tech_stacks_json=json.dumps(list(fields.tech_stacks)),
            thumbnail=thumbnail,
            created_at=now,
            updated_at=now,
        )
        with self._session() as session:
            session.add(row)
        return _to_project(row)

    def get_project(self, project_id: str) -> Optional[Project]:
        with self._session() as session:
            row = session.get(ProjectRecord, project_id)
            return _to_project(row) if row else None

    def list_projects(self, skip: int = 0, limit: int = 20) -> list[Project]:
        with self._session() as session:
            rows = session.scalars(
                select(ProjectRecord)
                .order_by(ProjectRecord.created_at.desc(), ProjectRecord.id)
                .offset(max(0, skip))
                .limit(max(0, limit))
            ).all()
            return [_to_project(r) for r in rows]

    def count_projects(self) -> int:
        with self._session() as session:
            return int(session.scalar(select(func.count()).select_from(ProjectRecord)) or 0)

    def update_project(self, project_id: str, changes: dict[str, Any]) -> Project:
        with self._session() as session:
            row = session.get(ProjectRecord, project_id)
            if row is None:
                raise KeyError(project_id)
            for key, value in changes.items():
                if key not in _PROJECT_FIELDS:
                    continue
                if key == "tech_stacks":
                    row.tech_stacks_json = json.dumps(list(value or []))
                elif key == "description":
                    row.description = value or ""
                else:
                    setattr(row, key, value)
            row.updated_at = _now()
            return _to_project(row)

    def delete_project(self, project_id: str) -> None:
        with self._session() as session:
            row = session.get(ProjectRecord, project_id)
            if row is None:
                raise KeyError(project_id)
            # SQLite ignores ON DELETE CASCADE unless the pragma is on, so clear links explicitly.
            session.query(ProjectTagRecord).filter_by(project_id=project_id).delete(synchronize_session=False)
            session.query(ProjectContributorRecord).filter_by(project_id=project_id).delete(
                synchronize_session=False
            )
            session.delete(row)

    # --- tags ---

    def create_tag(self, name: str) -> Tag:
        label = name.strip()
        with self._session() as session:
            existing = session.scalar(select(TagRecord).where(func.lower(TagRecord.name) == label.lower()))
            if existing is not None:
                raise ValueError(f"Tag '{label}' already exists")
            row = TagRecord(id=new_id(), name=label)
            session.add(row)
            return Tag(id=row.id, name=row.name)

    def get_tag(self, tag_id: str) -> Optional[Tag]:
        with self._session() as session:
            row = session.get(TagRecord, tag_id)
            return Tag(id=row.id, name=row.name) if row else None

    def list_tags(self) -> list[Tag]:
        with self._session() as session:
            rows = session.scalars(select(TagRecord).order_by(func.lower(TagRecord.name))).all()
            return [Tag(id=r.id, name=r.name) for r in rows]

    def link_tags(self, project_id: str, tag_ids: Iterable[str]) -> int:
        wanted = set(tag_ids)
        with self._session() as session:
            if session.get(ProjectRecord, project_id) is None:
                raise KeyError(project_id)
            found = set(session.scalars(select(TagRecord.id).where(TagRecord.id.in_(sorted(wanted)))).all())
            missing = sorted(wanted - found)
            if missing:
                raise KeyError(", ".join(missing))
            linked = set(
                session.scalars(
                    select(ProjectTagRecord.tag_id).where(ProjectTagRecord.project_id == project_id)
                ).all()
            )
            for tag_id in sorted(wanted - linked):
                session.add(ProjectTagRecord(project_id=project_id, tag_id=tag_id))
        return len(wanted)

    def tags_for_project(self, project_id: str) -> list[Tag]:
        with self._session() as session:
            rows = session.scalars(
                select(TagRecord)
                .join(ProjectTagRecord, ProjectTagRecord.tag_id == TagRecord.id)
                .where(ProjectTagRecord.project_id == project_id)
                .order_by(func.lower(TagRecord.name))
            ).all()
            return [Tag(id=r.id, name=r.name) for r in rows]

    # --- contributors ---

    def upsert_contributor(self, contributor: Contributor) -> Contributor:
        with self._session() as session:
            row = session.get(ContributorRecord, contributor.id)
            if row is None:
                row = ContributorRecord(id=contributor.id, created_at=contributor.created_at)
                session.add(row)
            row.source = contributor.source
            row.login = contributor.login
            row.avatar_url = contributor.avatar_url
            row.profile_url = contributor.profile_url
            row.contributions = contributor.contributions
            session.flush()
            return Contributor.model_validate(row)

    def link_contributor(self, contributor_id: str, project_id: str) -> None:
        with self._session() as session:
            if session.get(ProjectRecord, project_id) is None:
                raise KeyError(project_id)
            if session.get(ContributorRecord, contributor_id) is None:
                raise KeyError(contributor_id)
            existing = session.scalar(
                select(ProjectContributorRecord).where(
                    ProjectContributorRecord.project_id == project_id,
                    ProjectContributorRecord.contributor_id == contributor_id,
                )
            )
            if existing is None:
                session.add(ProjectContributorRecord(project_id=project_id, contributor_id=contributor_id))

    def contributors_for_project(self, project_id: str) -> list[Contributor]:
        with self._session() as session:
            rows = session.scalars(
                select(ContributorRecord)
                .join(ProjectContributorRecord, ProjectContributorRecord.contributor_id == ContributorRecord.id)
                .where(ProjectContributorRecord.project_id == project_id)
                .order_by(ContributorRecord.contributions.desc())
            ).all()
            return [Contributor.model_validate(r) for r in rows]
