"""Schema management for RDBMS-backed providers.

The memory provider needs no schema; sqlite and postgresql providers get
their tables created from the SQLAlchemy metadata protean builds for each
registered aggregate.
"""

from protean.domain import Domain
from sqlalchemy import create_engine

_RDBMS_PROVIDERS = ("sqlite", "postgresql")


def _register_models(domain: Domain, provider_name: str) -> None:
    # Touching ``_dao`` forces protean to build and register the SQLAlchemy model.
    for _, record in domain.registry.aggregates.items():
        if record.cls.meta_.provider == provider_name:
            domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> list[str]:
    """Create tables for every RDBMS provider. Returns the providers touched."""
    touched = []
    with domain.domain_context():
        for name, provider in domain.providers.items():
            if provider.conn_info["provider"] in _RDBMS_PROVIDERS:
                engine = create_engine(provider.conn_info["database_uri"])
                _register_models(domain, provider.name)
                provider._metadata.create_all(engine)
                touched.append(name)
    return touched


def drop_db(domain: Domain) -> list[str]:
    """Drop tables for every RDBMS provider. Returns the providers touched."""
    touched = []
    with domain.domain_context():
        for name, provider in domain.providers.items():
            if provider.conn_info["provider"] in _RDBMS_PROVIDERS:
                engine = create_engine(provider.conn_info["database_uri"])
                provider._metadata.drop_all(engine)
                touched.append(name)
    return touched
