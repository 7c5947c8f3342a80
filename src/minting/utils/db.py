"""Schema management for the SQL-backed providers of a domain.

Memory providers need no schema, so both operations skip them and report
which providers they touched.
"""

import structlog
from protean.domain import Domain
from sqlalchemy import create_engine

logger = structlog.get_logger(__name__)

SQL_PROVIDERS = ("sqlite", "postgresql")


def _sql_providers(domain: Domain):
    return [provider for _, provider in domain.providers.items() if provider.conn_info["provider"] in SQL_PROVIDERS]


def _register_tables(domain: Domain, provider) -> None:
    # A table joins the provider's metadata only once its DAO has been built
    records = list(domain.registry.aggregates.values()) + list(domain.registry.entities.values())
    for record in records:
        if record.cls.meta_.provider == provider.name:
            domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> list[str]:
    """Create every table. Returns the names of the providers set up."""
    touched = []
    with domain.domain_context():
        for provider in _sql_providers(domain):
            _register_tables(domain, provider)
            provider._metadata.create_all(create_engine(provider.conn_info["database_uri"]))
            logger.info("Database schema created", provider=provider.name)
            touched.append(provider.name)
    return touched


def drop_db(domain: Domain) -> list[str]:
    """Drop every table. Returns the names of the providers dropped."""
    touched = []
    with domain.domain_context():
        for provider in _sql_providers(domain):
            provider._metadata.drop_all(create_engine(provider.conn_info["database_uri"]))
            logger.info("Database schema dropped", provider=provider.name)
            touched.append(provider.name)
    return touched
