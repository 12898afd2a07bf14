import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Boolean,
    JSON,
    ForeignKey,
    Float,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Form(Base):
    __tablename__ = "forms"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="draft")  # 'draft' | 'published'
    share_type = Column(String, nullable=False, default="users")  # 'users' | 'public'
    builder_mode = Column(String, nullable=False, default="visual")  # 'visual' | 'code'
    custom_html = Column(Text, nullable=True)
    custom_css = Column(Text, nullable=True)
    custom_js = Column(Text, nullable=True)
    submit_button_text = Column(String, nullable=False, default="Enviar respuesta")
    submit_button_color = Column(String, nullable=False, default="#f97316")
    # Namen der URL-Parameter, die beim Absenden mitgespeichert werden
    url_params = Column(JSON, nullable=True)
    publish_start_date = Column(DateTime(timezone=True), nullable=True)
    publish_end_date = Column(DateTime(timezone=True), nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), onupdate=func.now(), server_default=func.now()
    )

    fields = relationship(
        "FormField",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="FormField.order",
    )
    responses = relationship(
        "FormResponse", back_populates="form", cascade="all, delete-orphan"
    )
    charts = relationship("Chart", back_populates="form", cascade="all, delete-orphan")
    chat_messages = relationship(
        "ChatMessage", back_populates="form", cascade="all, delete-orphan"
    )


class FormField(Base):
    __tablename__ = "form_fields"
    __table_args__ = (UniqueConstraint("form_id", "id", name="uq_form_fields_form_id_id"),)

    pk = Column(String(36), primary_key=True, default=_uuid)
    # vom Designer vergeben, nur innerhalb eines Formulars eindeutig
    id = Column(String(64), nullable=False, default=_uuid)
    form_id = Column(String(36), ForeignKey("forms.id", ondelete="CASCADE"), index=True)
    type = Column(String, nullable=False)  # text, email, number, select, checkbox, radio, date, textarea
    label = Column(Text, nullable=False)
    placeholder = Column(Text, nullable=True)
    required = Column(Boolean, default=False)
    options = Column(JSON, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    # {"enabled": bool, "logicType": "and"|"or", "conditions": [...]}
    conditional_logic = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    form = relationship("Form", back_populates="fields")


class FormResponse(Base):
    __tablename__ = "form_responses"

    id = Column(String(36), primary_key=True, default=_uuid)
    form_id = Column(String(36), ForeignKey("forms.id", ondelete="CASCADE"), index=True)
    respondent_email = Column(String, nullable=True)
    answers = Column(JSON, nullable=False)
    url_params = Column(JSON, nullable=True)
    submitted_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    form = relationship("Form", back_populates="responses")


class Chart(Base):
    __tablename__ = "charts"

    id = Column(String(36), primary_key=True, default=_uuid)
    form_id = Column(String(36), ForeignKey("forms.id", ondelete="CASCADE"), index=True)
    title = Column(String, nullable=False)
    chart_type = Column(String, nullable=False)  # bar, line, pie, area, scatter
    x_axis_field = Column(String, nullable=False)
    y_axis_field = Column(String, nullable=True)
    aggregation_type = Column(String, nullable=False, default="count")
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), onupdate=func.now(), server_default=func.now()
    )

    form = relationship("Form", back_populates="charts")


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    form_id = Column(String(36), ForeignKey("forms.id", ondelete="CASCADE"), index=True)
    username = Column(String, nullable=True)
    role = Column(String, nullable=False)  # 'user' | 'assistant'
    content = Column(Text, nullable=False, default="")
    tool_calls = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    form = relationship("Form", back_populates="chat_messages")


class AiUsageLog(Base):
    __tablename__ = "ai_usage_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    provider = Column(String, nullable=False)
    model = Column(String, nullable=False)
    form_id = Column(String(36), nullable=True, index=True)
    username = Column(String, nullable=True)
    prompt_tokens = Column(Integer, default=0)
    completion_tokens = Column(Integer, default=0)
    total_tokens = Column(Integer, default=0)
    estimated_cost = Column(Float, default=0)  # in Cent, ungerundet
    created_at = Column(DateTime(timezone=True), server_default=func.now())
