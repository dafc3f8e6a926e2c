"""
SQLAlchemy ORM Models for BuildTrack

Client onboarding and build-tracking models:
- Client: One enrolled client project per (user, plan tier)
- ClientPhaseState: Persisted status/checklist for one build phase
- QuizSubmission: Pre-signup quiz answers (gates email login)
- OnboardingStep: Committed answers for one onboarding step

Phase titles, day ranges and checklist labels are NOT stored here; they
live in the compiled-in catalog (core.phases.catalog). Only status,
timestamps and the label -> bool checklist map are persisted.
"""

from sqlalchemy import (
    Column, String, Integer, Text, TIMESTAMP, ForeignKey,
    Index, TypeDecorator, UniqueConstraint, JSON,
)
from sqlalchemy.orm import relationship, declarative_base
from sqlalchemy.dialects.postgresql import UUID as PostgreSQL_UUID, JSONB
import uuid

from ..utils import utcnow

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests/dev)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# UUID type that works with both PostgreSQL and SQLite
class UUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL's UUID type when available, otherwise stores as String(36).
    """
    impl = String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PostgreSQL_UUID(as_uuid=True))
        else:
            return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        elif dialect.name == 'postgresql':
            return value
        else:
            if isinstance(value, uuid.UUID):
                return str(value)
            else:
                return str(uuid.UUID(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        elif dialect.name == 'postgresql':
            return value
        else:
            if isinstance(value, uuid.UUID):
                return value
            else:
                return uuid.UUID(value)


# =============================================================================
# Client Models
# =============================================================================

class Client(Base):
    """An enrolled client project.

    A person (identified by hashed email) may hold one client record per
    plan tier.
    """
    __tablename__ = "clients"
    __table_args__ = (
        Index('idx_clients_email', 'email'),
        Index('idx_clients_plan_created', 'plan', 'created_at'),
        UniqueConstraint('user_id', 'plan', name='uq_client_user_plan'),
    )

    client_id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), nullable=False)            # sha256(email)[:32]
    email = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    plan = Column(String(20), nullable=False)                # LAUNCH | GROWTH
    onboarding_percent = Column(Integer, default=0, nullable=False)
    onboarding_completed_at = Column(TIMESTAMP, nullable=True)
    current_day_of_14 = Column(Integer, nullable=True)       # 1..14
    next_from_us = Column(Text, nullable=True)
    next_from_you = Column(Text, nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow, nullable=False)
    updated_at = Column(TIMESTAMP, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    phase_states = relationship("ClientPhaseState", back_populates="client", cascade="all, delete-orphan")
    onboarding_steps = relationship("OnboardingStep", back_populates="client", cascade="all, delete-orphan",
                                    order_by="OnboardingStep.step_number")

    def __repr__(self):
        return f"<Client(client_id={self.client_id}, email='{self.email}', plan='{self.plan}')>"


class ClientPhaseState(Base):
    """Persisted state of one build phase for one client.

    Seeded as NOT_STARTED when the client is created, or lazily on the
    first checklist toggle or status update for the phase. Never deleted
    in normal operation.
    """
    __tablename__ = "client_phase_states"
    __table_args__ = (
        Index('idx_phase_states_client', 'client_id'),
        UniqueConstraint('client_id', 'phase_id', name='uq_client_phase'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(UUID(), ForeignKey("clients.client_id", ondelete="CASCADE"), nullable=False)
    phase_id = Column(String(50), nullable=False)            # PHASE_1 .. PHASE_4
    status = Column(String(20), default='NOT_STARTED', nullable=False)
    started_at = Column(TIMESTAMP, nullable=True)
    completed_at = Column(TIMESTAMP, nullable=True)
    checklist = Column(JSONType, default=dict, nullable=False)  # {label: bool}
    created_at = Column(TIMESTAMP, default=utcnow, nullable=False)
    updated_at = Column(TIMESTAMP, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    client = relationship("Client", back_populates="phase_states")

    def __repr__(self):
        return f"<ClientPhaseState(client_id={self.client_id}, phase='{self.phase_id}', status='{self.status}')>"


# =============================================================================
# Onboarding Models
# =============================================================================

class QuizSubmission(Base):
    """Pre-signup quiz answers. An email must have one to log in."""
    __tablename__ = "quiz_submissions"
    __table_args__ = (
        Index('idx_quiz_email_created', 'email', 'created_at'),
        Index('idx_quiz_preferred_kit', 'preferred_kit'),
    )

    submission_id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone_number = Column(String(50), nullable=True)
    brand_name = Column(String(255), nullable=False)
    logo_status = Column(String(100), nullable=False)
    brand_goals = Column(JSONType, default=list)
    online_presence = Column(String(255), nullable=False)
    audience = Column(JSONType, default=list)
    brand_style = Column(String(255), nullable=False)
    timeline = Column(String(255), nullable=False)
    preferred_kit = Column(String(20), nullable=True)        # LAUNCH | GROWTH | NULL
    created_at = Column(TIMESTAMP, default=utcnow, nullable=False)
    updated_at = Column(TIMESTAMP, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<QuizSubmission(submission_id={self.submission_id}, email='{self.email}', kit='{self.preferred_kit}')>"


class OnboardingStep(Base):
    """Committed answers for one onboarding questionnaire step."""
    __tablename__ = "onboarding_steps"
    __table_args__ = (
        UniqueConstraint('client_id', 'step_number', name='uq_client_onboarding_step'),
    )

    step_id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    client_id = Column(UUID(), ForeignKey("clients.client_id", ondelete="CASCADE"), nullable=False)
    step_number = Column(Integer, nullable=False)            # 1..3
    title = Column(String(255), nullable=False)
    status = Column(String(20), default='NOT_STARTED', nullable=False)
    required_fields_total = Column(Integer, default=0, nullable=False)
    required_fields_completed = Column(Integer, default=0, nullable=False)
    time_estimate = Column(String(100), nullable=True)
    fields = Column(JSONType, default=dict)
    started_at = Column(TIMESTAMP, nullable=True)
    completed_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow, nullable=False)
    updated_at = Column(TIMESTAMP, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    client = relationship("Client", back_populates="onboarding_steps")

    def __repr__(self):
        return f"<OnboardingStep(client_id={self.client_id}, step={self.step_number}, status='{self.status}')>"
