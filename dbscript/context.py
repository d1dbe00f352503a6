"""
Helpers around a SQLAlchemy session: entity snapshots, mapped‑table metadata
and a couple of schema chores.

Metadata lookups are memoized per entity type for the life of the process;
the set of mapped classes is fixed once the application has started.
"""
from __future__ import annotations
import decimal
import typing as t

from sqlalchemy import MetaData, Table, and_, inspect, select
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Mapper, Session
from sqlalchemy.orm.attributes import set_committed_value


class UnsupportedContextError(TypeError):
    """Raised when an operation needs an ORM session but got something else."""


class ColumnMaxLength(t.NamedTuple):
    name: str
    max_length: int | None


class DecimalColumnMaxValue(t.NamedTuple):
    name: str
    max_value: decimal.Decimal | None


_database_name: str | None = None
_table_names: dict[str, str] = {}
_columns_max_length: dict[str, tuple[ColumnMaxLength, ...]] = {}
_decimal_columns_max_value: dict[str, tuple[DecimalColumnMaxValue, ...]] = {}


def clear_caches() -> None:
    global _database_name
    _database_name = None
    _table_names.clear()
    _columns_max_length.clear()
    _decimal_columns_max_value.clear()


def _type_key(entity_type: type) -> str:
    if entity_type is None:
        raise ValueError("entity_type is required")
    return f"{entity_type.__module__}.{entity_type.__qualname__}"


def _require_session(context: t.Any) -> Session:
    if context is None:
        raise ValueError("context is required")
    if not isinstance(context, Session):
        raise UnsupportedContextError("Context does not support operation")
    return context


def _mapper(entity_type: type) -> Mapper:
    return inspect(entity_type)


# --------------------------------------------------------------------------- #
# Entity snapshots
# --------------------------------------------------------------------------- #
def _tracked_state(session: Session, entity: t.Any):
    state = inspect(entity)
    return state if state.session is session else None


def _detached_copy(mapper: Mapper, values: dict[str, t.Any]) -> t.Any:
    copy = mapper.class_manager.new_instance()
    for key, value in values.items():
        set_committed_value(copy, key, value)
    return copy


def _stored_values(session: Session, state) -> dict[str, t.Any] | None:
    mapper = state.mapper
    props = list(mapper.column_attrs)
    stmt = select(*[prop.columns[0] for prop in props]).where(
        and_(*[col == value for col, value in zip(mapper.primary_key, state.identity)])
    )
    with session.no_autoflush:
        row = session.execute(stmt).first()
    if row is None:
        return None
    return {prop.key: value for prop, value in zip(props, row)}


def load_original_copy(session: Session, entity: t.Any) -> t.Any | None:
    """
    Return a detached copy of *entity* carrying the values it was loaded with,
    i.e. without the in‑memory changes made since.  ``None`` when the session
    does not track *entity*.
    """
    session = _require_session(session)
    state = _tracked_state(session, entity)
    if state is None:
        return None

    values: dict[str, t.Any] = {}
    unknown: list[str] = []
    for prop in state.mapper.column_attrs:
        with session.no_autoflush:
            history = state.attrs[prop.key].load_history()
        if history.deleted:
            values[prop.key] = history.deleted[0]
        elif history.unchanged:
            values[prop.key] = history.unchanged[0]
        elif history.added:
            values[prop.key] = history.added[0]
            # set while expired: the loaded value was never seen
            if state.identity is not None:
                unknown.append(prop.key)
        else:
            values[prop.key] = None

    if unknown:
        stored = _stored_values(session, state)
        if stored is not None:
            values.update({key: stored[key] for key in unknown})
    return _detached_copy(state.mapper, values)


def load_database_copy(session: Session, entity: t.Any) -> t.Any | None:
    """
    Return a detached copy of *entity* as currently stored in the database.
    Pending changes are not flushed first.  ``None`` when the session does not
    track *entity* or no row exists for its identity.
    """
    session = _require_session(session)
    state = _tracked_state(session, entity)
    if state is None or state.identity is None:
        return None

    values = _stored_values(session, state)
    return None if values is None else _detached_copy(state.mapper, values)


# --------------------------------------------------------------------------- #
# Schema chores
# --------------------------------------------------------------------------- #
def drop_plugin_table(context: Session | Connection, table_name: str) -> None:
    """Drop *table_name* if it exists and commit."""
    if context is None:
        raise ValueError("context is required")
    if not table_name:
        raise ValueError("table_name is required")

    conn = context.connection() if isinstance(context, Session) else context
    Table(table_name, MetaData()).drop(bind=conn, checkfirst=True)
    context.commit()


def db_name(context: Session | Connection) -> str | None:
    """Name of the database *context* is bound to."""
    global _database_name
    if context is None:
        raise ValueError("context is required")

    if _database_name:
        return _database_name

    bind = context.get_bind() if isinstance(context, Session) else context
    _database_name = bind.engine.url.database
    return _database_name


# --------------------------------------------------------------------------- #
# Mapped metadata
# --------------------------------------------------------------------------- #
def get_table_name(entity_type: type) -> str:
    """Name of the table *entity_type* is mapped to."""
    key = _type_key(entity_type)
    if key not in _table_names:
        _table_names.setdefault(key, _mapper(entity_type).local_table.name)
    return _table_names[key]


def get_columns_max_length(entity_type: type) -> tuple[ColumnMaxLength, ...]:
    """(attribute name, max length) for every mapped column of *entity_type*."""
    key = _type_key(entity_type)
    if key not in _columns_max_length:
        mapper = _mapper(entity_type)
        _columns_max_length.setdefault(
            key,
            tuple(
                ColumnMaxLength(
                    prop.key, getattr(prop.columns[0].type, "length", None)
                )
                for prop in mapper.column_attrs
            ),
        )
    return _columns_max_length[key]


def _python_type(column) -> type | None:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def _max_decimal_value(column) -> decimal.Decimal | None:
    precision = getattr(column.type, "precision", None)
    scale = getattr(column.type, "scale", None)
    if precision is None or scale is None:
        return None
    return decimal.Decimal(10) ** (precision - scale)


def get_decimal_columns_max_value(
    entity_type: type,
) -> tuple[DecimalColumnMaxValue, ...]:
    """
    (attribute name, largest storable magnitude) for every decimal column of
    *entity_type*; the value is ``10 ** (precision - scale)``, or ``None`` when
    the column does not declare both.
    """
    key = _type_key(entity_type)
    if key not in _decimal_columns_max_value:
        mapper = _mapper(entity_type)
        columns = [(prop.key, prop.columns[0]) for prop in mapper.column_attrs]
        _decimal_columns_max_value.setdefault(
            key,
            tuple(
                DecimalColumnMaxValue(name, _max_decimal_value(column))
                for name, column in columns
                if _python_type(column) is decimal.Decimal
            ),
        )
    return _decimal_columns_max_value[key]
