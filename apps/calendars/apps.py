from django.apps import AppConfig


class CalendarsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.calendars"
    label = "calendars"

    def ready(self) -> None:  # pragma: no cover - import side effects
        from . import handlers  # noqa: F401
