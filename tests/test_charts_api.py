import csv
import io
from urllib.parse import quote

import pytest


@pytest.fixture
def survey(create_form, submit):
    form = create_form(builderMode="code", urlParams=["utm_source"])
    for answers, params in [
        ({"origen": "A", "nps": "10"}, {"utm_source": "google"}),
        ({"origen": "B", "nps": "6"}, {"utm_source": "mail"}),
        ({"origen": "A", "nps": "20"}, {"utm_source": "google"}),
    ]:
        assert submit(form["id"], answers, urlParams=params).status_code == 201
    return form


def _create_chart(client, auth_headers, form_id, **payload):
    payload.setdefault("title", "Origen")
    payload.setdefault("chartType", "bar")
    return client.post(f"/api/forms/{form_id}/charts", json=payload, headers=auth_headers)


def test_create_chart_requires_y_for_avg(client, auth_headers, survey):
    response = _create_chart(
        client, auth_headers, survey["id"], xAxisField="origen", aggregationType="avg"
    )
    assert response.status_code == 422


def test_create_chart_rejects_unknown_type(client, auth_headers, survey):
    response = _create_chart(
        client, auth_headers, survey["id"], xAxisField="origen", chartType="radar"
    )
    assert response.status_code == 422


def test_create_chart_for_unknown_form(client, auth_headers):
    response = _create_chart(client, auth_headers, "nope", xAxisField="origen")
    assert response.status_code == 404


def test_count_series(client, auth_headers, survey):
    chart = _create_chart(client, auth_headers, survey["id"], xAxisField="origen").json()
    assert chart["aggregationType"] == "count"

    response = client.get(f"/api/charts/{chart['id']}/series", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["empty"] is False
    assert data["series"] == [{"name": "A", "value": 2}, {"name": "B", "value": 1}]
    assert data["chart"]["id"] == chart["id"]


def test_avg_series_over_url_param(client, auth_headers, survey):
    chart = _create_chart(
        client,
        auth_headers,
        survey["id"],
        xAxisField="utm_source",
        yAxisField="nps",
        aggregationType="avg",
    ).json()

    series = client.get(f"/api/charts/{chart['id']}/series", headers=auth_headers).json()
    assert series["series"] == [
        {"name": "google", "value": 15},
        {"name": "mail", "value": 6},
    ]


def test_series_empty_for_unanswered_field(client, auth_headers, survey):
    chart = _create_chart(client, auth_headers, survey["id"], xAxisField="ciudad").json()
    data = client.get(f"/api/charts/{chart['id']}/series", headers=auth_headers).json()
    assert data["series"] == []
    assert data["empty"] is True


def test_list_and_update_chart(client, auth_headers, survey):
    chart = _create_chart(client, auth_headers, survey["id"], xAxisField="origen").json()

    response = client.patch(
        f"/api/charts/{chart['id']}",
        json={"chartType": "pie", "title": "Por origen"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["chartType"] == "pie"
    assert response.json()["xAxisField"] == "origen"

    charts = client.get(f"/api/forms/{survey['id']}/charts", headers=auth_headers).json()
    assert [c["title"] for c in charts] == ["Por origen"]


def test_update_chart_validates_merged_state(client, auth_headers, survey):
    chart = _create_chart(client, auth_headers, survey["id"], xAxisField="origen").json()
    response = client.patch(
        f"/api/charts/{chart['id']}",
        json={"aggregationType": "sum"},
        headers=auth_headers,
    )
    assert response.status_code == 422

    response = client.patch(
        f"/api/charts/{chart['id']}",
        json={"aggregationType": "sum", "yAxisField": "nps"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    series = client.get(f"/api/charts/{chart['id']}/series", headers=auth_headers).json()
    assert series["series"] == [{"name": "A", "value": 30}, {"name": "B", "value": 6}]


def test_delete_chart(client, auth_headers, survey):
    chart = _create_chart(client, auth_headers, survey["id"], xAxisField="origen").json()
    response = client.delete(f"/api/charts/{chart['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Gráfico eliminado exitosamente"}
    assert client.delete(f"/api/charts/{chart['id']}", headers=auth_headers).status_code == 404


def test_export_csv_code_mode(client, auth_headers, survey):
    response = client.get(f"/api/forms/{survey['id']}/export/csv", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "_respuestas.csv" in response.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["ID", "Fecha de Envío", "Email", "origen", "nps", "utm_source"]
    assert len(rows) == 4
    # neueste Antwort zuerst
    assert rows[1][3:] == ["A", "20", "google"]


def test_export_csv_visual_uses_labels(client, auth_headers, create_form, submit):
    fields = [
        {"id": "q1", "type": "checkbox", "label": "Colores", "options": ["Rojo", "Azul"]},
        {"id": "q2", "type": "text", "label": "Comentario"},
    ]
    form = create_form(fields=fields)
    submit(form["id"], {"q1": ["Rojo", "Azul"]}, email="ana@example.com")

    response = client.get(f"/api/forms/{form['id']}/export/csv", headers=auth_headers)
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["ID", "Fecha de Envío", "Email", "Colores", "Comentario"]
    assert rows[1][2:] == ["ana@example.com", "Rojo, Azul", ""]


@pytest.mark.parametrize(
    "title, ascii_name",
    [
        ("问卷调查", "_____respuestas.csv"),
        ("Encuesta de satisfacción", "Encuesta_de_satisfacci_n_respuestas.csv"),
    ],
)
def test_export_csv_non_ascii_title(client, auth_headers, create_form, submit, title, ascii_name):
    form = create_form(title=title, builderMode="code")
    submit(form["id"], {"nps": "9"})

    response = client.get(f"/api/forms/{form['id']}/export/csv", headers=auth_headers)
    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert f'filename="{ascii_name}"' in disposition
    assert "filename*=UTF-8''" + quote(f"{title}_respuestas.csv", safe="") in disposition
