"""
Aggregation von Formularantworten zu Diagrammserien.

Eine Serie ist eine geordnete Liste von ``{"name": str, "value": number}``,
wird bei jedem Abruf neu berechnet und nie gespeichert.
"""

import math
from typing import Any, Dict, List, Mapping, Optional

NO_ANSWER_LABEL = "Sin respuesta"
AGGREGATION_TYPES = ("count", "sum", "avg", "min", "max")
CHART_TYPES = ("bar", "line", "pie", "area", "scatter")


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _answers_of(response: Any) -> Mapping:
    answers = _get(response, "answers")
    return answers if isinstance(answers, Mapping) else {}


def _url_params_of(response: Any) -> Mapping:
    params = _get(response, "url_params")
    if params is None:
        params = _get(response, "urlParams")
    return params if isinstance(params, Mapping) else {}


def resolve_value(response: Any, key: str) -> Any:
    """
    Wert eines Feldes in einer Antwort.

    Reihenfolge: verschachteltes ``answers["values"]`` (alte Visual-Antworten),
    dann ``answers`` direkt (Code-Modus), dann die URL-Parameter.
    """
    answers = _answers_of(response)
    nested = answers.get("values")
    if isinstance(nested, Mapping) and nested.get(key) is not None:
        return nested[key]
    if answers.get(key) is not None:
        return answers[key]
    return _url_params_of(response).get(key)


def normalize_answers(answers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Flacht die alte ``values``-Verschachtelung beim Speichern ab."""
    if not answers:
        return {}
    flat = {k: v for k, v in answers.items() if k != "values"}
    nested = answers.get("values")
    if isinstance(nested, Mapping):
        for key, value in nested.items():
            if value is not None:
                flat[key] = value
    elif "values" in answers:
        flat["values"] = nested
    return flat


def display_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def category_label(raw: Any) -> str:
    if raw is None or raw == "" or (isinstance(raw, (list, tuple)) and not raw):
        return NO_ANSWER_LABEL
    if isinstance(raw, (list, tuple)):
        # Mehrfachauswahl wird zu einer kombinierten Kategorie
        return ", ".join(display_string(v) for v in raw)
    return display_string(raw)


def to_number(raw: Any) -> float:
    if isinstance(raw, (list, tuple)):
        raw = raw[0] if raw else None
    if raw is None:
        return 0
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, (int, float)):
        return raw if not (isinstance(raw, float) and math.isnan(raw)) else 0
    try:
        text = str(raw).strip()
        if not text:
            return 0
        number = float(text)
    except ValueError:
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return int(number) if number.is_integer() and "." not in text else number


def aggregate(chart_spec: Any, responses: List[Any]) -> List[Dict[str, Any]]:
    x_field = _get(chart_spec, "x_axis_field") or _get(chart_spec, "xAxisField")
    y_field = _get(chart_spec, "y_axis_field") or _get(chart_spec, "yAxisField")
    aggregation_type = (
        _get(chart_spec, "aggregation_type") or _get(chart_spec, "aggregationType") or "count"
    )

    if not responses or not x_field:
        return []

    raw_x_values = [resolve_value(r, x_field) for r in responses]
    if all(v is None for v in raw_x_values):
        return []

    # dicts behalten die Einfügereihenfolge = Reihenfolge des ersten Auftretens
    totals: Dict[str, Optional[float]] = {}
    counts: Dict[str, int] = {}

    for response, raw_x in zip(responses, raw_x_values):
        category = category_label(raw_x)
        if aggregation_type == "count":
            totals[category] = (totals.get(category) or 0) + 1
            continue

        totals.setdefault(category, None)
        raw_y = resolve_value(response, y_field) if y_field else None
        if raw_y is None:
            if aggregation_type == "sum":
                totals[category] = totals[category] or 0
            continue

        y_value = to_number(raw_y)
        current = totals[category]
        if aggregation_type in ("sum", "avg"):
            totals[category] = (current or 0) + y_value
            counts[category] = counts.get(category, 0) + 1
        elif aggregation_type == "min":
            totals[category] = y_value if current is None else min(current, y_value)
        elif aggregation_type == "max":
            totals[category] = y_value if current is None else max(current, y_value)

    series = []
    for name, total in totals.items():
        if total is None:
            value = 0
        elif aggregation_type == "avg":
            value = total / counts[name] if counts.get(name) else 0
        else:
            value = total
        series.append({"name": name, "value": value})
    return series
