"""
Database abstraction for the hosted Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Protocol

from sqlalchemy import JSON, Boolean, Column, Float, Integer, String, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from advent_backend.errors import BackendError
from advent_backend.vouchers import GiftVoucher


class DbClient(Protocol):
    """Interface for database access."""

    def ping(self) -> None:
        ...

    def list_templates(self) -> list["TemplateRecord"]:
        ...

    def get_template(self, template_id: str) -> Optional["TemplateRecord"]:
        ...

    def get_calendar_settings(self, parent_uuid: str) -> Optional[dict]:
        ...

    def update_calendar_settings(self, parent_uuid: str, settings: dict) -> bool:
        ...

    def save_vouchers(self, vouchers: list[GiftVoucher]) -> None:
        ...

    def get_voucher(self, code: str) -> Optional[GiftVoucher]:
        ...


@dataclass
class TemplateRecord:
    template_id: str
    name: str
    description: str = ""
    metadata: dict = field(default_factory=dict)
    retired: bool = False
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "template_id": self.template_id,
            "name": self.name,
            "description": self.description,
            "metadata": self.metadata,
            "retired": self.retired,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class CalendarRecord:
    calendar_id: str
    parent_uuid: str
    child_uuid: str
    template_id: Optional[str] = None
    year: int = field(default_factory=lambda: datetime.now(timezone.utc).year)
    settings: dict = field(default_factory=dict)
    updated_at: float = field(default_factory=lambda: time.time())


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.templates: Dict[str, TemplateRecord] = {}
        self.calendars: Dict[str, CalendarRecord] = {}
        self.vouchers: Dict[str, GiftVoucher] = {}

    def ping(self) -> None:
        return None

    def save_template(self, template: TemplateRecord) -> None:
        self.templates[template.template_id] = template

    def save_calendar(self, calendar: CalendarRecord) -> None:
        self.calendars[calendar.calendar_id] = calendar

    def list_templates(self) -> list[TemplateRecord]:
        active = [t for t in self.templates.values() if not t.retired]
        return sorted(active, key=lambda t: t.name)

    def get_template(self, template_id: str) -> Optional[TemplateRecord]:
        template = self.templates.get(template_id)
        if not template or template.retired:
            return None
        return template

    def _calendar_for_parent(self, parent_uuid: str) -> Optional[CalendarRecord]:
        for calendar in self.calendars.values():
            if calendar.parent_uuid == parent_uuid:
                return calendar
        return None

    def get_calendar_settings(self, parent_uuid: str) -> Optional[dict]:
        calendar = self._calendar_for_parent(parent_uuid)
        if not calendar:
            return None
        return dict(calendar.settings or {})

    def update_calendar_settings(self, parent_uuid: str, settings: dict) -> bool:
        calendar = self._calendar_for_parent(parent_uuid)
        if not calendar:
            return False
        calendar.settings = dict(settings)
        calendar.updated_at = time.time()
        return True

    def save_vouchers(self, vouchers: list[GiftVoucher]) -> None:
        for voucher in vouchers:
            self.vouchers[voucher.code] = voucher

    def get_voucher(self, code: str) -> Optional[GiftVoucher]:
        return self.vouchers.get(code)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.templates.clear()
        self.calendars.clear()
        self.vouchers.clear()


def _to_epoch(value: Optional[datetime]) -> Optional[float]:
    return value.timestamp() if value else None


def _from_epoch(value: Optional[float]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (the hosted
    Postgres in production, SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
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

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self.Session() as session:
                yield session
        except SQLAlchemyError as exc:
            raise BackendError("database", str(exc)) from exc

    def _to_template_record(self, row: "TemplateRow") -> TemplateRecord:
        return TemplateRecord(
            template_id=row.template_id,
            name=row.name,
            description=row.description or "",
            metadata=row.data or {},
            retired=bool(row.retired),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _to_voucher(self, row: "VoucherRow") -> GiftVoucher:
        return GiftVoucher(
            code=row.code,
            tier_id=row.tier_id,
            calendars_count=row.calendars_count,
            expires_at=_from_epoch(row.expires_at),
            created_at=_from_epoch(row.created_at),
            purchase_id=row.purchase_id,
            redeemed_at=_from_epoch(row.redeemed_at),
            redeemed_by=row.redeemed_by,
        )

    def ping(self) -> None:
        with self._session() as session:
            session.execute(select(ParentRow.parent_uuid).limit(1)).all()

    def save_template(self, template: TemplateRecord) -> None:
        with self._session() as session:
            row = session.get(TemplateRow, template.template_id)
            if not row:
                row = TemplateRow(template_id=template.template_id)
                session.add(row)
            row.name = template.name
            row.description = template.description
            row.data = template.metadata
            row.retired = template.retired
            row.created_at = template.created_at
            row.updated_at = template.updated_at
            session.commit()

    def list_templates(self) -> list[TemplateRecord]:
        with self._session() as session:
            stmt = (
                select(TemplateRow)
                .where(TemplateRow.retired == False)
                .order_by(TemplateRow.name.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_template_record(row) for row in rows]

    def get_template(self, template_id: str) -> Optional[TemplateRecord]:
        with self._session() as session:
            row = session.get(TemplateRow, template_id)
            if not row or row.retired:
                return None
            return self._to_template_record(row)

    def save_calendar(self, calendar: CalendarRecord) -> None:
        with self._session() as session:
            session.merge(
                CalendarRow(
                    calendar_id=calendar.calendar_id,
                    parent_uuid=calendar.parent_uuid,
                    child_uuid=calendar.child_uuid,
                    template_id=calendar.template_id,
                    year=calendar.year,
                    settings=calendar.settings,
                    updated_at=calendar.updated_at,
                )
            )
            session.commit()

    def _calendar_row(self, session: Session, parent_uuid: str) -> Optional["CalendarRow"]:
        stmt = (
            select(CalendarRow)
            .where(CalendarRow.parent_uuid == parent_uuid)
            .order_by(CalendarRow.year.desc())
            .limit(1)
        )
        return session.execute(stmt).scalar_one_or_none()

    def get_calendar_settings(self, parent_uuid: str) -> Optional[dict]:
        with self._session() as session:
            row = self._calendar_row(session, parent_uuid)
            if not row:
                return None
            return dict(row.settings or {})

    def update_calendar_settings(self, parent_uuid: str, settings: dict) -> bool:
        with self._session() as session:
            row = self._calendar_row(session, parent_uuid)
            if not row:
                return False
            row.settings = dict(settings)
            row.updated_at = time.time()
            session.commit()
            return True

    def save_vouchers(self, vouchers: list[GiftVoucher]) -> None:
        with self._session() as session:
            for voucher in vouchers:
                session.merge(
                    VoucherRow(
                        code=voucher.code,
                        tier_id=voucher.tier_id,
                        calendars_count=voucher.calendars_count,
                        expires_at=_to_epoch(voucher.expires_at),
                        created_at=_to_epoch(voucher.created_at),
                        purchase_id=voucher.purchase_id,
                        redeemed_at=_to_epoch(voucher.redeemed_at),
                        redeemed_by=voucher.redeemed_by,
                    )
                )
            session.commit()

    def get_voucher(self, code: str) -> Optional[GiftVoucher]:
        with self._session() as session:
            row = session.get(VoucherRow, code)
            return self._to_voucher(row) if row else None


Base = declarative_base()


class ParentRow(Base):
    __tablename__ = "parents"

    parent_uuid = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    auth_provider = Column(String, nullable=False, default="email_magic_link")
    family_uuid = Column(String, nullable=True)
    created_at = Column(Float, nullable=False, default=time.time)
    updated_at = Column(Float, nullable=False, default=time.time)


class TemplateRow(Base):
    __tablename__ = "templates"

    template_id = Column(String, primary_key=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    data = Column("metadata", JSON, nullable=False, default=dict)
    retired = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False, default=time.time)
    updated_at = Column(Float, nullable=False, default=time.time)


class CalendarRow(Base):
    __tablename__ = "calendars"

    calendar_id = Column(String, primary_key=True)
    parent_uuid = Column(String, nullable=False, index=True)
    child_uuid = Column(String, nullable=False)
    template_id = Column(String, nullable=True)
    year = Column(Integer, nullable=False)
    settings = Column(JSON, nullable=False, default=dict)
    updated_at = Column(Float, nullable=False, default=time.time)


class VoucherRow(Base):
    __tablename__ = "vouchers"

    code = Column(String, primary_key=True)
    tier_id = Column(String, nullable=False)
    calendars_count = Column(Integer, nullable=False)
    expires_at = Column(Float, nullable=False)
    created_at = Column(Float, nullable=False)
    purchase_id = Column(String, nullable=False, index=True)
    redeemed_at = Column(Float, nullable=True)
    redeemed_by = Column(String, nullable=True)
