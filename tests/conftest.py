from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import trainhub.database.db as db_module
from trainhub.core.enums import TrainingStatus
from trainhub.database.models import Base, Company, Topic, Trainer
from trainhub.services.notifications import TransitionEventPublisher
from trainhub.services.slot_registry import SlotRegistry, SlotSpec


@dataclass
class Seed:
    company: Company
    other_company: Company
    topic: Topic
    trainers: list[Trainer]


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'trainhub_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def seed_parties(db) -> Seed:
    company = Company(company_name="Acme Learning", contact_name="Dana Roe", email="dana@acme.example")
    other_company = Company(company_name="Globex", contact_name="Sam Poe", email="sam@globex.example")
    topic = Topic(name="Kubernetes Fundamentals")
    trainers = [
        Trainer(first_name="Ada", last_name="Lovelace", email="ada@trainers.example", daily_rate=800.0),
        Trainer(first_name="Alan", last_name="Turing", email="alan@trainers.example", daily_rate=900.0),
        Trainer(first_name="Grace", last_name="Hopper", email="grace@trainers.example", daily_rate=950.0),
    ]
    db.add_all([company, other_company, topic, *trainers])
    db.commit()
    for row in (company, other_company, topic, *trainers):
        db.refresh(row)
    return Seed(company=company, other_company=other_company, topic=topic, trainers=trainers)


@pytest.fixture
def seed(session) -> Seed:
    return seed_parties(session)


@pytest.fixture
def publisher() -> TransitionEventPublisher:
    return TransitionEventPublisher()


@pytest.fixture
def make_training(session, seed, publisher):
    def _make(daily_rate: float = 800.0, status: str = TrainingStatus.PUBLISHED.value, **overrides):
        spec = SlotSpec(
            title=overrides.pop("title", "Kubernetes in a Day"),
            topic_id=overrides.pop("topic_id", seed.topic.id),
            company_id=overrides.pop("company_id", seed.company.id),
            start_date=overrides.pop("start_date", date(2026, 3, 10)),
            end_date=overrides.pop("end_date", date(2026, 3, 11)),
            daily_rate=daily_rate,
            status=status,
            **overrides,
        )
        return SlotRegistry(db=session, publisher=publisher).create_slot(spec)

    return _make


@pytest.fixture
def app_database(tmp_path):
    """Point the process-wide engine at a throwaway SQLite file for API and task tests."""
    original_url = db_module.get_active_database_url()
    db_module.reset_engine(f"sqlite:///{tmp_path / 'trainhub_api.db'}")
    Base.metadata.create_all(bind=db_module.get_engine())
    yield db_module
    db_module.get_engine().dispose()
    db_module.reset_engine(original_url)


@pytest.fixture
def app_seed(app_database) -> Seed:
    with app_database.get_db_session() as db:
        return seed_parties(db)
