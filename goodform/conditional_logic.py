"""
Bedingte Sichtbarkeit von Formularfeldern.

Ein Feld kann eine ``conditionalLogic`` tragen::

    {"enabled": true, "logicType": "and", "conditions": [
        {"fieldId": "f1", "operator": "equals", "value": "Sí"}
    ]}

Dieselbe Regel wird vom Frontend (Anzeige) und vom Backend (Pflichtfeldprüfung
beim Absenden) verwendet. Die Funktionen hier sind rein und werfen keine
Exceptions bei unvollständigen Daten.
"""

from typing import Any, Dict, List, Mapping, Optional

CHOICE_FIELD_TYPES = ("select", "checkbox", "radio")
OPERATORS = ("equals", "not_equals", "contains")


def _get(obj: Any, key: str, default: Any = None) -> Any:
    # Felder kommen als ORM-Objekt, Pydantic-Modell oder dict
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _logic_of(field: Any) -> Optional[Mapping]:
    logic = _get(field, "conditional_logic")
    if logic is None:
        logic = _get(field, "conditionalLogic")
    if logic is not None and not isinstance(logic, Mapping):
        # Pydantic-Modell
        logic = logic.model_dump(by_alias=True)
    return logic


def _active_conditions(field: Any) -> List[Mapping]:
    logic = _logic_of(field)
    if not logic or not logic.get("enabled"):
        return []
    return [c for c in logic.get("conditions") or [] if isinstance(c, Mapping)]


def evaluate_condition(condition: Mapping, answers: Mapping[str, Any]) -> bool:
    answer = answers.get(condition.get("fieldId"))
    if answer is None:
        equals = False
    elif isinstance(answer, (list, tuple)):
        equals = condition.get("value") in answer
    else:
        equals = answer == condition.get("value")

    operator = condition.get("operator")
    if operator == "equals":
        return equals
    if operator == "not_equals":
        return not equals
    if operator == "contains":
        # nur für Mehrfachauswahl definiert
        return isinstance(answer, (list, tuple)) and condition.get("value") in answer
    return False


def should_show(field: Any, answers: Mapping[str, Any]) -> bool:
    """True, wenn ``field`` bei den bisherigen ``answers`` angezeigt wird."""
    conditions = _active_conditions(field)
    if not conditions:
        return True

    results = [evaluate_condition(c, answers or {}) for c in conditions]
    if str(_logic_of(field).get("logicType") or "and").lower() == "or":
        return any(results)
    return all(results)


def evaluation_order(fields: List[Any]) -> List[Any]:
    """
    Topologische Reihenfolge der Felder nach ihren Bedingungen.

    Felder ohne offene Abhängigkeiten behalten ihre deklarierte Reihenfolge.
    Verweise auf unbekannte Felder werden ignoriert, Zyklen werden in
    deklarierter Reihenfolge angehängt.
    """
    by_id = {str(_get(f, "id")): f for f in fields}
    pending = list(fields)
    done = set()
    ordered = []

    while pending:
        progressed = False
        for field in list(pending):
            deps = {
                str(c.get("fieldId"))
                for c in _active_conditions(field)
                if str(c.get("fieldId")) in by_id
                and str(c.get("fieldId")) != str(_get(field, "id"))
            }
            if deps <= done:
                ordered.append(field)
                done.add(str(_get(field, "id")))
                pending.remove(field)
                progressed = True
        if not progressed:
            ordered.extend(pending)
            break
    return ordered


def visible_fields(fields: List[Any], answers: Mapping[str, Any]) -> List[Any]:
    visible_ids = {
        str(_get(f, "id"))
        for f in evaluation_order(fields)
        if should_show(f, answers or {})
    }
    return [f for f in fields if str(_get(f, "id")) in visible_ids]


def is_empty_answer(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def missing_required_fields(fields: List[Any], answers: Mapping[str, Any]) -> List[Any]:
    answers = answers or {}
    return [
        f
        for f in visible_fields(fields, answers)
        if _get(f, "required") and is_empty_answer(answers.get(str(_get(f, "id"))))
    ]


def validate_conditional_logic(fields: List[Any]) -> List[str]:
    """
    Prüft, dass Bedingungen nur auf vorherige Auswahlfelder verweisen.

    Gibt eine Liste von Fehlermeldungen zurück (leer, wenn alles gültig ist).
    """
    errors: List[str] = []
    position: Dict[str, int] = {str(_get(f, "id")): i for i, f in enumerate(fields)}

    for index, field in enumerate(fields):
        label = _get(field, "label") or _get(field, "id")
        logic = _logic_of(field)
        if not logic:
            continue
        logic_type = str(logic.get("logicType") or "and").lower()
        if logic_type not in ("and", "or"):
            errors.append(f"Campo '{label}': tipo de lógica desconocido '{logic_type}'")

        for condition in logic.get("conditions") or []:
            ref_id = str(condition.get("fieldId"))
            operator = condition.get("operator")
            if operator not in OPERATORS:
                errors.append(f"Campo '{label}': operador desconocido '{operator}'")
            if ref_id not in position:
                errors.append(f"Campo '{label}': la condición referencia un campo inexistente")
                continue
            if position[ref_id] >= index:
                errors.append(
                    f"Campo '{label}': la condición debe referenciar un campo anterior"
                )
                continue
            ref_type = _get(fields[position[ref_id]], "type")
            if ref_type not in CHOICE_FIELD_TYPES:
                errors.append(
                    f"Campo '{label}': solo se pueden usar campos de selección en condiciones"
                )
    return errors
