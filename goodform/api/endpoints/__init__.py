from . import admin, forms, public, charts, chat  # noqa: F401
