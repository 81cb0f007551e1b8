import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from restoledger.db.base import Base
from restoledger.models.restaurant import Restaurant
from restoledger.models.user import User
from restoledger.models.bank_account import BankAccount
from restoledger.models.category import TransactionCategory
from restoledger.models.supplier import Supplier
from restoledger.models.transaction import FinancialTransaction
from restoledger.models.audit_log import AuditLog


@pytest.fixture()
def engine():
    # StaticPool keeps one in-memory database visible to the TestClient thread too
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    s = Session()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def restaurant(session):
    r = Restaurant(name="Cantina Teste", slug=f"cantina-{uuid4().hex[:8]}")
    session.add(r)
    session.commit()
    return r


@pytest.fixture()
def other_restaurant(session):
    r = Restaurant(name="Outra Casa", slug=f"outra-{uuid4().hex[:8]}")
    session.add(r)
    session.commit()
    return r


@pytest.fixture()
def client(session):
    from restoledger.main import app
    from restoledger.api.deps import db

    def _db():
        yield session

    app.dependency_overrides[db] = _db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
