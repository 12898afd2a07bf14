from . import crud_form, crud_response, crud_chart, crud_chat  # noqa: F401
