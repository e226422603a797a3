from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'dpms.core'

    def ready(self):
        """Import signals when app is ready"""
        import dpms.core.model_cache  # noqa: F401
        import dpms.core.signals  # noqa: F401
