from django.apps import AppConfig


class InstallationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'installations'
    verbose_name = 'Project Installations'
