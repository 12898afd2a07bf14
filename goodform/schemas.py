from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any, Literal, Union
from datetime import datetime

FieldType = Literal[
    "text", "email", "number", "select", "checkbox", "radio", "date", "textarea"
]
ChartType = Literal["bar", "line", "pie", "area", "scatter"]
AggregationType = Literal["count", "sum", "avg", "min", "max"]


class CamelModel(BaseModel):
    """JSON im camelCase des Frontends, Python-seitig snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CamelORMModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# --- Schemas für Admin Login ---


class AdminLoginRequest(BaseModel):
    """Schema für die Admin-Login-Anfrage."""

    username: str
    password: str


class Token(BaseModel):
    """Schema für das Access Token."""

    access_token: str
    token_type: str  # Üblicherweise "bearer"


# --- Bedingte Logik ---


class Condition(CamelModel):
    field_id: str
    operator: Literal["equals", "not_equals", "contains"] = "equals"
    value: Any = None


class ConditionalLogic(CamelModel):
    enabled: bool = False
    logic_type: Literal["and", "or"] = "and"
    conditions: List[Condition] = Field(default_factory=list)


# --- Schemas für Formularfelder ---


class FormFieldBase(CamelModel):
    # vom Designer vergeben, damit Bedingungen darauf zeigen können
    id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    type: FieldType
    label: str = Field(..., min_length=1)
    placeholder: Optional[str] = None
    required: bool = False
    options: Optional[List[str]] = None
    order: Optional[int] = None
    conditional_logic: Optional[ConditionalLogic] = None


class FormFieldResponse(CamelORMModel):
    id: str
    form_id: str
    type: str
    label: str
    placeholder: Optional[str] = None
    required: bool = False
    options: Optional[List[str]] = None
    order: int
    conditional_logic: Optional[Dict[str, Any]] = None


class FormFieldsUpdate(CamelModel):
    fields: List[FormFieldBase] = Field(default_factory=list)


# --- Schemas für Formulare ---


class FormBase(CamelModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    share_type: Literal["users", "public"] = "users"
    builder_mode: Literal["visual", "code"] = "visual"
    custom_html: Optional[str] = None
    custom_css: Optional[str] = None
    custom_js: Optional[str] = None
    submit_button_text: str = "Enviar respuesta"
    submit_button_color: str = "#f97316"
    url_params: Optional[List[str]] = None
    publish_start_date: Optional[datetime] = None
    publish_end_date: Optional[datetime] = None


class FormCreate(FormBase):
    fields: List[FormFieldBase] = Field(default_factory=list)


class FormUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    share_type: Optional[Literal["users", "public"]] = None
    builder_mode: Optional[Literal["visual", "code"]] = None
    custom_html: Optional[str] = None
    custom_css: Optional[str] = None
    custom_js: Optional[str] = None
    submit_button_text: Optional[str] = None
    submit_button_color: Optional[str] = None
    url_params: Optional[List[str]] = None
    publish_start_date: Optional[datetime] = None
    publish_end_date: Optional[datetime] = None

    @field_validator(
        "title",
        "share_type",
        "builder_mode",
        "submit_button_text",
        "submit_button_color",
    )
    @classmethod
    def reject_explicit_null(cls, v):
        # Weglassen ist erlaubt, null nicht (Spalten sind NOT NULL)
        if v is None:
            raise ValueError("must not be null")
        return v


class FormResponseSchema(FormBase):
    id: str
    status: str
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    fields: List[FormFieldResponse] = []

    model_config = ConfigDict(from_attributes=True)


class FormListItem(CamelORMModel):
    id: str
    title: str
    description: Optional[str] = None
    status: str
    share_type: str
    builder_mode: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    response_count: int = 0


class FormDeleteResponse(CamelModel):
    form_id: str
    message: str = "Formulario eliminado exitosamente"


class PublicFormResponse(CamelORMModel):
    id: str
    title: str
    description: Optional[str] = None
    fields: List[FormFieldResponse] = []
    share_type: str
    builder_mode: str
    custom_html: Optional[str] = None
    custom_css: Optional[str] = None
    custom_js: Optional[str] = None
    submit_button_text: str
    submit_button_color: str
    url_params: Optional[List[str]] = None


# --- Antworten ---


class SubmissionCreate(CamelModel):
    answers: Dict[str, Any] = Field(default_factory=dict)
    email: Optional[str] = None
    url_params: Optional[Dict[str, Any]] = None

    @field_validator("url_params")
    @classmethod
    def stringify_url_params(cls, v):
        if v is None:
            return v
        return {str(k): (val if val is None else str(val)) for k, val in v.items()}


class FormResponseOut(CamelORMModel):
    id: str
    form_id: str
    respondent_email: Optional[str] = None
    answers: Dict[str, Any]
    url_params: Optional[Dict[str, Any]] = None
    submitted_at: Optional[datetime] = None


class DashboardStats(CamelModel):
    total_forms: int
    published_forms: int
    draft_forms: int
    total_responses: int


# --- Diagramme ---


class ChartBase(CamelModel):
    title: str = Field(..., min_length=1)
    chart_type: ChartType
    x_axis_field: str = Field(..., min_length=1)
    y_axis_field: Optional[str] = None
    aggregation_type: AggregationType = "count"

    @model_validator(mode="after")
    def check_y_axis_field(self):
        if self.aggregation_type != "count" and not self.y_axis_field:
            raise ValueError(
                "yAxisField is required when aggregationType is not 'count'"
            )
        return self


class ChartCreate(ChartBase):
    pass


class ChartUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    chart_type: Optional[ChartType] = None
    x_axis_field: Optional[str] = Field(default=None, min_length=1)
    y_axis_field: Optional[str] = None
    aggregation_type: Optional[AggregationType] = None


class ChartOut(ChartBase):
    id: str
    form_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SeriesPoint(BaseModel):
    name: str
    value: Union[int, float]


class ChartSeriesResponse(BaseModel):
    chart: ChartOut
    series: List[SeriesPoint]
    empty: bool


# --- Chat-Agent ---


class ChatRequest(BaseModel):
    message: Optional[str] = None


class ChatToolResult(CamelModel):
    tool_call_id: str
    function_name: str
    result: Any = None


class ChatResponse(CamelModel):
    message: str
    tool_calls: List[ChatToolResult] = []


class ChatMessageOut(CamelORMModel):
    id: int
    role: str
    content: str
    tool_calls: Optional[List[Dict[str, Any]]] = None
    created_at: Optional[datetime] = None
