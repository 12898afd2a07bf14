from datetime import datetime, timedelta, timezone

from tests.test_forms_api import PET_FIELDS


def _iso(delta):
    return (datetime.now(timezone.utc) + delta).isoformat()


def test_public_form_visible_when_published(client, create_form):
    form = create_form(fields=PET_FIELDS)
    response = client.get(f"/api/public/forms/{form['id']}")
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == form["title"]
    assert [f["id"] for f in data["fields"]] == ["q1", "q2"]
    assert data["submitButtonText"] == "Enviar respuesta"


def test_draft_form_not_available(client, create_form):
    form = create_form(publish=False)
    response = client.get(f"/api/public/forms/{form['id']}")
    assert response.status_code == 404
    assert response.json()["detail"] == "Formulario no disponible"


def test_users_only_form_not_public(client, create_form):
    form = create_form(shareType="users")
    assert client.get(f"/api/public/forms/{form['id']}").status_code == 404


def test_unknown_form(client):
    response = client.get("/api/public/forms/nope")
    assert response.status_code == 404
    assert response.json()["detail"] == "Formulario no encontrado"


def test_form_before_publish_window(client, create_form):
    form = create_form(publishStartDate=_iso(timedelta(days=1)))
    response = client.get(f"/api/public/forms/{form['id']}")
    assert response.status_code == 404
    detail = response.json()["detail"]
    assert "availableFrom" in detail
    assert detail["message"] == "Este formulario aún no está disponible"


def test_form_after_publish_window(client, create_form, submit):
    form = create_form(publishEndDate=_iso(timedelta(days=-1)))
    response = submit(form["id"], {"q1": "No"})
    assert response.status_code == 404
    assert "availableUntil" in response.json()["detail"]


def test_form_inside_publish_window(client, create_form):
    form = create_form(
        publishStartDate=_iso(timedelta(days=-1)),
        publishEndDate=_iso(timedelta(days=1)),
    )
    assert client.get(f"/api/public/forms/{form['id']}").status_code == 200


def test_submit_hidden_required_field_not_enforced(create_form, submit):
    form = create_form(fields=PET_FIELDS)
    response = submit(form["id"], {"q1": "No"})
    assert response.status_code == 201, response.text
    assert response.json()["answers"] == {"q1": "No"}


def test_submit_visible_required_field_enforced(create_form, submit):
    form = create_form(fields=PET_FIELDS)
    response = submit(form["id"], {"q1": "Sí", "q2": ""})
    assert response.status_code == 400
    assert response.json()["detail"] == "Faltan campos obligatorios: Nombre de la mascota"

    response = submit(form["id"], {"q1": "Sí", "q2": "Firulais"})
    assert response.status_code == 201


def test_submit_missing_unconditional_required_field(create_form, submit):
    form = create_form(fields=PET_FIELDS)
    response = submit(form["id"], {})
    assert response.status_code == 400
    assert "¿Tienes mascota?" in response.json()["detail"]


def test_submit_flattens_nested_values(create_form, submit):
    form = create_form(fields=PET_FIELDS)
    response = submit(form["id"], {"values": {"q1": "No"}})
    assert response.status_code == 201
    assert response.json()["answers"] == {"q1": "No"}


def test_code_mode_skips_required_validation(create_form, submit):
    form = create_form(builderMode="code", customHtml="<form></form>")
    response = submit(form["id"], {"anything": "goes"}, email="ana@example.com")
    assert response.status_code == 201
    data = response.json()
    assert data["respondentEmail"] == "ana@example.com"
    assert data["answers"] == {"anything": "goes"}


def test_url_params_filtered_to_declared(create_form, submit):
    form = create_form(builderMode="code", urlParams=["utm_source"])
    response = submit(
        form["id"],
        {"nps": "9"},
        urlParams={"utm_source": "google", "tracking": "xyz"},
    )
    assert response.status_code == 201
    assert response.json()["urlParams"] == {"utm_source": "google"}


def test_url_params_kept_without_declaration(create_form, submit):
    form = create_form(builderMode="code")
    response = submit(form["id"], {"nps": "9"}, urlParams={"ref": 42})
    assert response.status_code == 201
    assert response.json()["urlParams"] == {"ref": "42"}
