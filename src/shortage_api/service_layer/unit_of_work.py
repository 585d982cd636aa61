# pylint: disable=attribute-defined-outside-init
from __future__ import annotations
import abc
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

import config

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """Rows of a query as plain dicts, keyed by column label."""
    rows: List[Dict[str, Any]] = field(default_factory=list)


class AbstractUnitOfWork(abc.ABC):
    """Read-only unit of work: a scoped connection plus ``query``."""

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args):
        self.rollback()

    def query(self, sql: str, **params) -> QueryResult:
        """Execute parameterised SQL (``:name`` placeholders) and return its rows."""
        return self._query(sql, params)

    @abc.abstractmethod
    def _query(self, sql: str, params: Dict[str, Any]) -> QueryResult:
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError


def _build_engine():
    pool = config.get_pool_config()
    return create_engine(
        config.get_postgres_uri(),
        pool_size=pool["pool_size"],
        pool_recycle=pool["pool_recycle"],
        pool_pre_ping=True,
        connect_args={"connect_timeout": pool["connect_timeout"]},
    )


DEFAULT_SESSION_FACTORY = sessionmaker(bind=_build_engine())


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, session_factory=DEFAULT_SESSION_FACTORY):
        self.session_factory = session_factory

    def __enter__(self):
        self.session = self.session_factory()  # type: Session
        return super().__enter__()

    def __exit__(self, *args):
        super().__exit__(*args)
        self.session.close()

    def _query(self, sql: str, params: Dict[str, Any]) -> QueryResult:
        result = self.session.execute(text(sql), params)
        return QueryResult(rows=[dict(row) for row in result.mappings()])

    def rollback(self):
        self.session.rollback()
