from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Configuración de la aplicación"""

    # Configuración de la base de datos
    database_url: str = "sqlite:///./splitshifts.db"
    sql_echo: bool = False
    auto_create_db: bool = True

    # Configuración de la aplicación
    app_name: str = "SplitShifts Auth API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    cors_origins: List[str] = ["*"]

    # Configuración JWT / sesiones
    secret_key: str = "your-secret-key-change-this-in-production-make-it-very-long-and-random"
    access_token_expire_minutes: int = 60 * 24
    sign_out_path: str = "/logout"

    # Credenciales y tokens de un solo uso
    bcrypt_rounds: int = 12
    verification_token_ttl_hours: int = 24
    password_reset_token_ttl_minutes: int = 60
    totp_issuer: str = "SplitShifts App"

    # Links que se envían por email
    app_base_url: Optional[str] = "http://localhost:3000"

    # Email
    email_backend: str = "console"
    email_from: str = "SplitShifts <no-reply@splitshifts.app>"
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    smtp_use_ssl: bool = False

    rate_limit_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"


# Instancia global de configuración
settings = Settings()


def get_settings() -> Settings:
    """Dependencia para inyectar la configuración (se puede sobrescribir en tests)"""
    return settings
