from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from trainhub.core.enums import (
    InvoiceStatus,
    PendingConfirmation,
    RequestStatus,
    TrainingStatus,
)
from trainhub.orchestration.state_machine import NegotiationState

from .db import Base

_OPEN_REQUEST_PREDICATE = text("status IN ('PENDING', 'ACCEPTED')")


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    company_name = Column(String, nullable=False)
    contact_name = Column(String)
    email = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Trainer(Base):
    __tablename__ = "trainers"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    daily_rate = Column(Float)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Topic(Base):
    __tablename__ = "topics"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)


class Training(Base):
    __tablename__ = "trainings"
    __table_args__ = (
        Index("idx_trainings_status", "status"),
        Index("idx_trainings_company_status", "company_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    topic_id = Column(Integer, ForeignKey("topics.id"), nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    start_time = Column(Time)
    end_time = Column(Time)
    location = Column(String)
    participant_count = Column(Integer, nullable=False, default=1)
    daily_rate = Column(Float, nullable=False)
    status = Column(String, nullable=False, default=TrainingStatus.DRAFT.value)
    # Allocation claim and training-scoped optimistic lock, both written only
    # through conditional UPDATEs in the allocation resolver / engine.
    accepted_request_id = Column(Integer, nullable=True)
    allocation_version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    topic = relationship("Topic")
    company = relationship("Company")
    requests = relationship("TrainingRequest", back_populates="training", order_by="TrainingRequest.id")


class TrainingRequest(Base):
    __tablename__ = "training_requests"
    __table_args__ = (
        Index("idx_training_requests_training_status", "training_id", "status"),
        Index("idx_training_requests_trainer", "trainer_id"),
        Index(
            "uq_training_requests_open_pair",
            "training_id",
            "trainer_id",
            unique=True,
            sqlite_where=_OPEN_REQUEST_PREDICATE,
            postgresql_where=_OPEN_REQUEST_PREDICATE,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    training_id = Column(Integer, ForeignKey("trainings.id"), nullable=False)
    trainer_id = Column(Integer, ForeignKey("trainers.id"), nullable=False)
    status = Column(String, nullable=False, default=RequestStatus.PENDING.value)
    pending_confirmation_by = Column(String, nullable=False, default=PendingConfirmation.NONE.value)
    counter_price = Column(Float)
    company_counter_price = Column(Float)
    agreed_price = Column(Float)
    decline_reason = Column(String)
    message = Column(Text)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # UPDATEs carry ``WHERE version = :seen``; a stale row raises StaleDataError on flush.
    __mapper_args__ = {"version_id_col": version}

    training = relationship("Training", back_populates="requests")
    trainer = relationship("Trainer")

    @property
    def state(self) -> NegotiationState:
        return NegotiationState(
            status=RequestStatus(self.status),
            pending_confirmation_by=PendingConfirmation(self.pending_confirmation_by),
        )

    @property
    def trainer_accepted(self) -> bool:
        """Trainer agreed to the company's counter and awaits confirmation."""
        return self.state.trainer_accepted

    @property
    def is_completed(self) -> bool:
        """Derived view: an accepted booking whose training has completed."""
        return (
            self.status == RequestStatus.ACCEPTED.value
            and self.training is not None
            and self.training.status == TrainingStatus.COMPLETED.value
        )


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        Index("idx_invoices_training", "training_id"),
        UniqueConstraint("training_request_id", name="uq_invoices_training_request_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String, nullable=False, unique=True)
    training_id = Column(Integer, ForeignKey("trainings.id"), nullable=False)
    training_request_id = Column(Integer, ForeignKey("training_requests.id"), nullable=False)
    trainer_id = Column(Integer, ForeignKey("trainers.id"), nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    amount = Column(Float, nullable=False)
    invoice_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default=InvoiceStatus.ISSUED.value)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    training = relationship("Training")
    training_request = relationship("TrainingRequest")


class RequestTransitionAudit(Base):
    __tablename__ = "request_transition_audit"
    __table_args__ = (
        Index("idx_request_transition_audit_request", "training_request_id"),
        Index("idx_request_transition_audit_training", "training_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    training_request_id = Column(Integer, ForeignKey("training_requests.id"), nullable=False)
    training_id = Column(Integer, ForeignKey("trainings.id"), nullable=False)
    action = Column(String, nullable=False)
    actor = Column(String, nullable=False, default="SYSTEM")
    from_status = Column(String, nullable=False)
    to_status = Column(String, nullable=False)
    price = Column(Float)
    reason = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
