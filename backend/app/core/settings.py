import os


class Settings:
    def __init__(self):
        self.app_name = "Invoicer"
        self.api_version = "1.0.0"
        self.environment = os.getenv("INVOICER_ENV", "development")
        self.database_url = os.getenv("INVOICER_DATABASE_URL", "sqlite:///./invoicer.db")
        self.uploads_dir = os.getenv("INVOICER_UPLOADS_DIR", "./uploads")
        self.logos_dir = os.path.join(self.uploads_dir, "logos")
        self.base_url = os.getenv("INVOICER_BASE_URL") or None
        self.log_level = os.getenv("INVOICER_LOG_LEVEL", "INFO")
        self.cors_origins = [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]


_settings_instance = None


def get_settings():
    """Return a singleton Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
