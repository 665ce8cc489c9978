# tests/conftest.py
"""Shared fixtures: a throwaway SQLite database per test."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import pytest
from sqlalchemy.orm import sessionmaker
from fusion.database import build_engine, create_tables
from fusion.models.connector import Connector


@pytest.fixture
def db_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'fusion_test.db'}")
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(db_engine):
    session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def make_connector(db):
    def _make(category="yolink", name="Home", config=None, cfg_enc=None):
        connector = Connector(
            category=category,
            name=name,
            cfg_enc=cfg_enc if cfg_enc is not None else json.dumps(config or {}),
        )
        db.add(connector)
        db.commit()
        return connector
    return _make
