"""
Werkzeuge (Function Calling) für den KI-Chat-Agenten.

Die Definitionen folgen dem Tool-Format der OpenAI Chat Completions API. Jede
``execute_*``-Funktion gibt ein JSON-serialisierbares dict zurück; Fehler werden
als ``{"error": ...}`` an das Modell gemeldet statt geworfen.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .aggregation import AGGREGATION_TYPES, CHART_TYPES, category_label, resolve_value
from .schemas import ChartBase, ChartCreate

logger = logging.getLogger(__name__)

ANALYZE_OPERATIONS = ("count", "avg", "sum", "min", "max", "list")
MAX_LISTED_VALUES = 20
FIELD_SAMPLE_RESPONSES = 5

AGENT_TOOLS: List[Dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "analyze_responses",
            "description": "Analiza las respuestas del formulario para obtener estadísticas, promedios, conteos, etc.",
            "parameters": {
                "type": "object",
                "properties": {
                    "field": {
                        "type": "string",
                        "description": "Campo a analizar (ej: 'nps', 'origen', 'email')",
                    },
                    "operation": {
                        "type": "string",
                        "enum": list(ANALYZE_OPERATIONS),
                        "description": "Operación a realizar: count (contar), avg (promedio), sum (suma), min (mínimo), max (máximo), list (listar valores únicos)",
                    },
                    "groupBy": {
                        "type": "string",
                        "description": "Campo por el cual agrupar (opcional)",
                    },
                },
                "required": ["field", "operation"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "create_chart",
            "description": "Crea un nuevo gráfico de visualización de datos",
            "parameters": {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Título descriptivo del gráfico"},
                    "chartType": {
                        "type": "string",
                        "enum": list(CHART_TYPES),
                        "description": "Tipo de gráfico",
                    },
                    "xAxisField": {"type": "string", "description": "Campo para el eje X (agrupar por)"},
                    "yAxisField": {
                        "type": "string",
                        "description": "Campo para el eje Y (analizar). Solo para agregaciones sum, avg, min, max",
                    },
                    "aggregationType": {
                        "type": "string",
                        "enum": list(AGGREGATION_TYPES),
                        "description": "Tipo de agregación",
                    },
                },
                "required": ["title", "chartType", "xAxisField", "aggregationType"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "update_chart",
            "description": "Modifica un gráfico existente. Usa get_existing_charts primero para ver los IDs disponibles.",
            "parameters": {
                "type": "object",
                "properties": {
                    "chartId": {"type": "string", "description": "ID del gráfico a modificar"},
                    "title": {"type": "string", "description": "Nuevo título (opcional)"},
                    "chartType": {
                        "type": "string",
                        "enum": list(CHART_TYPES),
                        "description": "Nuevo tipo de gráfico (opcional)",
                    },
                    "xAxisField": {"type": "string", "description": "Nuevo campo para el eje X (opcional)"},
                    "yAxisField": {"type": "string", "description": "Nuevo campo para el eje Y (opcional)"},
                    "aggregationType": {
                        "type": "string",
                        "enum": list(AGGREGATION_TYPES),
                        "description": "Nuevo tipo de agregación (opcional)",
                    },
                },
                "required": ["chartId"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "delete_chart",
            "description": "Elimina un gráfico existente. Usa get_existing_charts primero para ver los IDs disponibles.",
            "parameters": {
                "type": "object",
                "properties": {
                    "chartId": {"type": "string", "description": "ID del gráfico a eliminar"},
                },
                "required": ["chartId"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_existing_charts",
            "description": "Obtiene la lista de gráficos existentes del formulario con sus IDs y configuraciones",
            "parameters": {"type": "object", "properties": {}, "required": []},
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_form_fields",
            "description": "Obtiene la lista de campos disponibles en el formulario",
            "parameters": {"type": "object", "properties": {}, "required": []},
        },
    },
]


def _parse_number(value: Any) -> Optional[float]:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _reduce(operation: str, values: List[Any]) -> Dict[str, Any]:
    if operation == "count":
        return {"result": len(values)}
    if operation == "list":
        unique = []
        seen = set()
        for value in values:
            marker = json.dumps(value, sort_keys=True, default=str)
            if marker not in seen:
                seen.add(marker)
                unique.append(value)
        return {"result": unique[:MAX_LISTED_VALUES]}

    numbers = [n for n in (_parse_number(v) for v in values) if n is not None]
    if not numbers:
        return {"error": "No hay valores numéricos"}
    if operation == "avg":
        return {"result": round(sum(numbers) / len(numbers), 2)}
    if operation == "sum":
        return {"result": sum(numbers)}
    if operation == "min":
        return {"result": min(numbers)}
    if operation == "max":
        return {"result": max(numbers)}
    return {"error": f"Operación '{operation}' no reconocida"}


async def execute_analyze_responses(
    db: AsyncSession,
    form_id: str,
    field: Optional[str],
    operation: Optional[str],
    group_by: Optional[str] = None,
) -> Dict[str, Any]:
    if not field:
        return {"error": "Se requiere el campo a analizar"}
    if operation not in ANALYZE_OPERATIONS:
        return {"error": f"Operación '{operation}' no reconocida"}

    responses = await crud.crud_response.get_responses_for_form(db, form_id)
    if not responses:
        return {"error": "No hay respuestas para analizar"}

    values = [v for v in (resolve_value(r, field) for r in responses) if v is not None]
    if not values:
        return {"error": f"No se encontraron valores para el campo '{field}'"}

    if not group_by:
        return _reduce(operation, values)

    grouped: Dict[str, List[Any]] = {}
    for response in responses:
        group_value = resolve_value(response, group_by)
        field_value = resolve_value(response, field)
        if group_value is not None and field_value is not None:
            grouped.setdefault(category_label(group_value), []).append(field_value)

    results: Dict[str, Any] = {}
    for group, group_values in grouped.items():
        reduced = _reduce(operation, group_values)
        if "result" in reduced:
            results[group] = reduced["result"]
    return {"result": results}


def _chart_summary(chart) -> Dict[str, Any]:
    return {
        "id": chart.id,
        "title": chart.title,
        "type": chart.chart_type,
        "xAxis": chart.x_axis_field,
        "yAxis": chart.y_axis_field,
        "aggregation": chart.aggregation_type,
    }


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(err.get("msg", "") for err in exc.errors())


async def execute_create_chart(db: AsyncSession, form_id: str, args: Dict[str, Any]) -> Dict[str, Any]:
    try:
        chart_in = ChartCreate.model_validate(
            {
                "title": args.get("title"),
                "chartType": args.get("chartType"),
                "xAxisField": args.get("xAxisField"),
                "yAxisField": args.get("yAxisField") or None,
                "aggregationType": args.get("aggregationType") or "count",
            }
        )
    except ValidationError as e:
        return {"error": f"Datos de gráfico inválidos: {_validation_message(e)}"}

    chart = await crud.crud_chart.create_chart(db, form_id, chart_in)
    logger.info("Chat-Agent hat Diagramm %s für Formular %s erstellt.", chart.id, form_id)
    return {
        "success": True,
        "chartId": chart.id,
        "message": f'Gráfico "{chart.title}" creado exitosamente',
    }


async def _get_form_chart(db: AsyncSession, form_id: str, chart_id: Optional[str]):
    if not chart_id:
        return None
    chart = await crud.crud_chart.get_chart(db, chart_id)
    if chart is None or chart.form_id != form_id:
        return None
    return chart


async def execute_update_chart(db: AsyncSession, form_id: str, args: Dict[str, Any]) -> Dict[str, Any]:
    chart_id = args.get("chartId")
    chart = await _get_form_chart(db, form_id, chart_id)
    if chart is None:
        return {"error": f"No se encontró el gráfico con ID {chart_id}"}

    updates = {
        key: args[alias]
        for key, alias in (
            ("title", "title"),
            ("chart_type", "chartType"),
            ("x_axis_field", "xAxisField"),
            ("y_axis_field", "yAxisField"),
            ("aggregation_type", "aggregationType"),
        )
        if args.get(alias) is not None
    }
    merged = {
        "title": chart.title,
        "chart_type": chart.chart_type,
        "x_axis_field": chart.x_axis_field,
        "y_axis_field": chart.y_axis_field,
        "aggregation_type": chart.aggregation_type,
        **updates,
    }
    try:
        ChartBase.model_validate(merged)
    except ValidationError as e:
        return {"error": f"Datos de gráfico inválidos: {_validation_message(e)}"}

    chart = await crud.crud_chart.update_chart(db, chart, updates)
    return {
        "success": True,
        "message": "Gráfico actualizado exitosamente",
        "chart": _chart_summary(chart),
    }


async def execute_delete_chart(db: AsyncSession, form_id: str, args: Dict[str, Any]) -> Dict[str, Any]:
    chart_id = args.get("chartId")
    chart = await _get_form_chart(db, form_id, chart_id)
    if chart is None:
        return {"error": f"No se encontró el gráfico con ID {chart_id}"}
    await crud.crud_chart.delete_chart(db, chart)
    return {"success": True, "message": "Gráfico eliminado exitosamente"}


async def execute_get_existing_charts(db: AsyncSession, form_id: str) -> Dict[str, Any]:
    charts = await crud.crud_chart.get_charts_for_form(db, form_id)
    return {"charts": [_chart_summary(c) for c in charts]}


async def execute_get_form_fields(db: AsyncSession, form_id: str) -> Dict[str, Any]:
    form = await crud.crud_form.get_form(db, form_id)
    fields = await crud.crud_form.get_form_fields(db, form_id)
    responses = await crud.crud_response.get_responses_for_form(
        db, form_id, limit=FIELD_SAMPLE_RESPONSES
    )

    # dict als geordnete Menge
    dynamic_fields: Dict[str, None] = {}
    for name in (form.url_params if form else None) or []:
        dynamic_fields[name] = None
    for response in responses:
        answers = response.answers or {}
        nested = answers.get("values")
        for key in (nested if isinstance(nested, dict) else answers):
            dynamic_fields[key] = None
        for key in response.url_params or {}:
            dynamic_fields[key] = None

    return {
        "visualFields": [{"name": f.label, "id": f.id, "type": f.type} for f in fields],
        "dynamicFields": list(dynamic_fields),
    }


async def execute_tool(
    db: AsyncSession, form_id: str, name: str, args: Dict[str, Any]
) -> Dict[str, Any]:
    if name == "analyze_responses":
        return await execute_analyze_responses(
            db, form_id, args.get("field"), args.get("operation"), args.get("groupBy")
        )
    if name == "create_chart":
        return await execute_create_chart(db, form_id, args)
    if name == "update_chart":
        return await execute_update_chart(db, form_id, args)
    if name == "delete_chart":
        return await execute_delete_chart(db, form_id, args)
    if name == "get_existing_charts":
        return await execute_get_existing_charts(db, form_id)
    if name == "get_form_fields":
        return await execute_get_form_fields(db, form_id)
    return {"error": f"Función desconocida: {name}"}
