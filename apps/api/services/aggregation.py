"""Paginated relational aggregation over the SQL store.

An :class:`Aggregation` is declared the way the listing endpoints read:
start from a base model and its projected fields, add single-valued lookups
(flattened into a nested object), multi-valued collections (gathered into a
list with a second query), filters and a sort, then ``paginate`` it.

    page = await (
        Aggregation(Video, {"id": Video.id, "title": Video.title})
        .lookup(User, User.id == Video.owner_id, "owner", {"username": User.username})
        .match(Video.is_published.is_(True))
        .sort(Video.created_at, "desc")
        .paginate(db, PageRequest(page=2, limit=10))
    )
    payload = page.to_payload("videos")
"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


SORT_DIRECTIONS = ("asc", "desc")


def _parse_positive_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    text = str(value).strip()
    if not (text.isascii() and text.isdigit()):
        return None
    parsed = int(text)
    return parsed if parsed >= 1 else None


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    @classmethod
    def parse(
        cls,
        page: Any = None,
        limit: Any = None,
        *,
        default_limit: int = 10,
        max_limit: int = 100,
    ) -> "PageRequest":
        """Strictly parse raw query text; invalid values fall back to defaults, limit is capped."""
        parsed_page = _parse_positive_int(page) or 1
        parsed_limit = _parse_positive_int(limit) or default_limit
        return cls(page=parsed_page, limit=max(1, min(parsed_limit, max_limit)))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page:
    items: List[Dict[str, Any]]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def to_payload(self, label: str = "docs") -> Dict[str, Any]:
        total_pages = self.total_pages
        has_prev = self.page > 1
        has_next = self.page < total_pages
        return {
            label: self.items,
            "totalDocs": self.total,
            "limit": self.limit,
            "page": self.page,
            "totalPages": total_pages,
            "hasPrevPage": has_prev,
            "hasNextPage": has_next,
            "prevPage": self.page - 1 if has_prev else None,
            "nextPage": self.page + 1 if has_next else None,
        }


@dataclass(frozen=True)
class Lookup:
    """Single-valued join flattened into ``field``.

    ``required`` lookups drop base rows without a match (inner join); the
    others are left-outer and yield ``None`` when nothing matches.
    """

    target: Any
    on: Any
    field: str
    project: Mapping[str, Any]
    required: bool = True


@dataclass(frozen=True)
class Collect:
    """Multi-valued join gathered into a list under ``field``.

    ``parent_key`` is the column compared against the base ids; ``source`` is
    the entity selected from, ``joins`` any further ``(target, on)`` pairs.
    """

    source: Any
    parent_key: Any
    field: str
    project: Mapping[str, Any]
    joins: Sequence[Tuple[Any, Any]] = ()
    where: Sequence[Any] = ()
    order_by: Sequence[Any] = ()


@dataclass
class Aggregation:
    base: Any
    project: Mapping[str, Any]
    lookups: List[Lookup] = field(default_factory=list)
    collections: List[Collect] = field(default_factory=list)
    criteria: List[Any] = field(default_factory=list)
    ordering: List[Any] = field(default_factory=list)
    id_field: str = "id"

    def lookup(
        self,
        target: Any,
        on: Any,
        field_name: str,
        project: Mapping[str, Any],
        *,
        required: bool = True,
    ) -> "Aggregation":
        self.lookups.append(Lookup(target, on, field_name, project, required))
        return self

    def collect(self, spec: Collect) -> "Aggregation":
        self.collections.append(spec)
        return self

    def match(self, *criteria: Any) -> "Aggregation":
        self.criteria.extend(c for c in criteria if c is not None)
        return self

    def sort(self, column: Any, direction: str = "desc") -> "Aggregation":
        direction = direction if direction in SORT_DIRECTIONS else "desc"
        self.ordering.append(column.desc() if direction == "desc" else column.asc())
        return self

    def _columns(self) -> List[Tuple[Tuple[str, ...], Any]]:
        columns: List[Tuple[Tuple[str, ...], Any]] = [((key,), col) for key, col in self.project.items()]
        for spec in self.lookups:
            columns.extend(((spec.field, key), col) for key, col in spec.project.items())
        return columns

    def _statement(self, columns: Sequence[Tuple[Tuple[str, ...], Any]]):
        stmt = select(*[col.label(f"c{idx}") for idx, (_, col) in enumerate(columns)]).select_from(self.base)
        for spec in self.lookups:
            if spec.required:
                stmt = stmt.join(spec.target, spec.on)
            else:
                stmt = stmt.outerjoin(spec.target, spec.on)
        if self.criteria:
            stmt = stmt.where(*self.criteria)
        return stmt

    def _ordered(self, stmt):
        tie_break = []
        created_at = getattr(self.base, "created_at", None)
        if created_at is not None:
            tie_break.append(created_at.desc())
        tie_break.append(self.base.id.asc())
        return stmt.order_by(*self.ordering, *tie_break)

    def _shape(self, columns: Sequence[Tuple[Tuple[str, ...], Any]], row: Any) -> Dict[str, Any]:
        doc: Dict[str, Any] = {}
        for idx, (path, _) in enumerate(columns):
            value = row[idx]
            if len(path) == 1:
                doc[path[0]] = value
            else:
                doc.setdefault(path[0], {})[path[1]] = value
        for spec in self.lookups:
            nested = doc.get(spec.field)
            if not spec.required and nested is not None and all(v is None for v in nested.values()):
                doc[spec.field] = None
        return doc

    async def _attach_collections(self, db: AsyncSession, docs: List[Dict[str, Any]]) -> None:
        if not self.collections or not docs:
            return
        parent_ids = [doc[self.id_field] for doc in docs]
        for spec in self.collections:
            keys = list(spec.project.keys())
            stmt = select(
                spec.parent_key.label("parent"),
                *[col.label(f"c{idx}") for idx, col in enumerate(spec.project.values())],
            ).select_from(spec.source)
            for target, on in spec.joins:
                stmt = stmt.join(target, on)
            stmt = stmt.where(spec.parent_key.in_(parent_ids), *spec.where)
            if spec.order_by:
                stmt = stmt.order_by(*spec.order_by)
            grouped: Dict[Any, List[Dict[str, Any]]] = {pid: [] for pid in parent_ids}
            for row in (await db.execute(stmt)).all():
                grouped.setdefault(row[0], []).append({key: row[idx + 1] for idx, key in enumerate(keys)})
            for doc in docs:
                doc[spec.field] = grouped.get(doc[self.id_field], [])

    async def all(self, db: AsyncSession, *, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        columns = self._columns()
        stmt = self._ordered(self._statement(columns))
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = (await db.execute(stmt)).all()
        docs = [self._shape(columns, row) for row in rows]
        await self._attach_collections(db, docs)
        return docs

    async def first(self, db: AsyncSession) -> Optional[Dict[str, Any]]:
        docs = await self.all(db, limit=1)
        return docs[0] if docs else None

    async def count(self, db: AsyncSession) -> int:
        stmt = self._statement(self._columns())
        result = await db.execute(select(func.count()).select_from(stmt.subquery()))
        return int(result.scalar() or 0)

    async def paginate(self, db: AsyncSession, request: PageRequest) -> Page:
        total = await self.count(db)
        if request.offset >= total:
            return Page(items=[], total=total, page=request.page, limit=request.limit)

        columns = self._columns()
        stmt = self._ordered(self._statement(columns)).offset(request.offset).limit(request.limit)
        rows = (await db.execute(stmt)).all()
        docs = [self._shape(columns, row) for row in rows]
        await self._attach_collections(db, docs)
        return Page(items=docs, total=total, page=request.page, limit=request.limit)
