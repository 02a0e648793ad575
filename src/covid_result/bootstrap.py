"""Composition root: build the store connections once at startup."""

import logging
from functools import partial
from typing import Callable, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

import config
from covid_result.adapters import orm
from covid_result.service_layer.unit_of_work import AbstractUnitOfWork, SqlAlchemyUnitOfWork

logger = logging.getLogger(__name__)


def bootstrap(
    start_orm: bool = True,
    uow_factory: Optional[Callable[[], AbstractUnitOfWork]] = None,
) -> Callable[[], AbstractUnitOfWork]:
    """
    Return a factory producing a fresh unit of work per request.

    With no uow_factory, engines for the local ledger store and the clinical
    store are created from config and the ledger tables are created if absent.
    """
    if start_orm:
        orm.start_mappers()

    if uow_factory is not None:
        return uow_factory

    local_uri = config.get_local_db_uri()
    clinical_uri = config.get_clinical_db_uri()
    logger.info(f"Ledger store: {make_url(local_uri).render_as_string(hide_password=True)}")
    logger.info(f"Clinical store: {make_url(clinical_uri).render_as_string(hide_password=True)}")

    local_engine = create_engine(local_uri)
    orm.metadata.create_all(local_engine)
    logger.info("✓ Ledger tables initialized")

    clinical_engine = create_engine(clinical_uri, pool_pre_ping=True, pool_recycle=1800)

    return partial(
        SqlAlchemyUnitOfWork,
        session_factory=sessionmaker(bind=local_engine),
        clinical_session_factory=sessionmaker(bind=clinical_engine),
    )
