from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Mapping, Optional, Sequence, Tuple, cast

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine, Result
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError

from security import TransientStoreError


def _prepare_statement(
    sql: str, params: Sequence[object] | Mapping[str, object] | None
) -> Tuple[str, dict]:
    if params is None:
        return sql, {}
    if isinstance(params, Mapping):
        return sql, dict(params)
    if not isinstance(params, Sequence):
        raise TypeError("Unsupported parameter type; expected sequence or mapping.")

    placeholders = sql.count("?")
    if placeholders != len(params):
        raise ValueError(
            f"Parameter count mismatch: expected {placeholders}, got {len(params)}."
        )

    bound_params: dict[str, object] = {}
    parts = sql.split("?")
    rebuilt = parts[0]
    for index, (part, value) in enumerate(zip(parts[1:], params)):
        key = f"p{index}"
        rebuilt += f":{key}{part}"
        bound_params[key] = value
    return rebuilt, bound_params


@contextmanager
def store_errors() -> Iterator[None]:
    """Re-raise connection-level failures as TransientStoreError."""
    try:
        yield
    except (OperationalError, InterfaceError, DisconnectionError) as exc:
        raise TransientStoreError(
            "User store is temporarily unavailable",
            details={"reason": exc.__class__.__name__},
        ) from exc


class ResultWrapper:
    def __init__(self, result: Result):
        self._result = result

    def fetchone(self) -> Optional[Mapping[str, object]]:
        row = self._result.fetchone()
        return None if row is None else cast(Mapping[str, object], row._mapping)

    def fetchall(self) -> list[Mapping[str, object]]:
        return [
            cast(Mapping[str, object], row._mapping) for row in self._result.fetchall()
        ]

    def scalar(self):
        return self._result.scalar()

    @property
    def rowcount(self) -> int:
        raw = getattr(self._result, "rowcount", None)
        return int(raw or 0)


class SQLAlchemyConnectionWrapper:
    def __init__(self, connection: Connection):
        self._connection = connection

    def execute(
        self,
        sql: str,
        params: Sequence[object] | Mapping[str, object] | None = None,
    ) -> ResultWrapper:
        statement, bound_params = _prepare_statement(sql, params)
        with store_errors():
            result = self._connection.execute(text(statement), bound_params)
        return ResultWrapper(result)

    def close(self) -> None:
        self._connection.close()


@contextmanager
def transactional_connection(engine: Engine) -> Iterator[SQLAlchemyConnectionWrapper]:
    with store_errors():
        connection = engine.connect()
        transaction = connection.begin()
    wrapper = SQLAlchemyConnectionWrapper(connection)
    try:
        yield wrapper
    except Exception:
        transaction.rollback()
        connection.close()
        raise
    else:
        try:
            with store_errors():
                transaction.commit()
        finally:
            connection.close()


def connection(engine: Engine) -> SQLAlchemyConnectionWrapper:
    with store_errors():
        conn = engine.connect()
    return SQLAlchemyConnectionWrapper(conn)
