from django.apps import AppConfig


class FiledbConfig(AppConfig):
    name = "filedb"
    verbose_name = "Versioned file storage"
