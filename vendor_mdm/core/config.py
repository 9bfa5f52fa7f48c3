
from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = "Vendor MDM API"
    app_env: str = "development"
    app_port: int = 8000
    frontend_url: str = "http://localhost:5173"

    # Relational store (system of record)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./vendor_mdm.db",
        alias="DATABASE_URL",
    )
    auto_create_schema: bool = Field(
        default=True, alias="AUTO_CREATE_SCHEMA",
    )  # Use Alembic instead outside local dev

    # Document store (payload artifacts, domain events, metadata)
    document_store_backend: str = Field(
        default="sql", alias="DOCUMENT_STORE_BACKEND",
    )  # "sql" | "memory"
    document_store_url: str = Field(
        default="sqlite+aiosqlite:///./vendor_mdm_documents.db",
        alias="DOCUMENT_STORE_URL",
    )

    # Message queue
    queue_backend: str = Field(default="sql", alias="QUEUE_BACKEND")  # "sql" | "memory"
    queue_url: str = Field(
        default="sqlite+aiosqlite:///./vendor_mdm_queue.db",
        alias="QUEUE_URL",
    )
    queue_max_deliveries: int = Field(default=5, alias="QUEUE_MAX_DELIVERIES")
    sap_environment_code: str = Field(default="D01", alias="SAP_ENVIRONMENT_CODE")

    # Invitations
    app_base_url: str = Field(
        default="https://vendor-portal.company.com", alias="APP_BASE_URL",
    )
    company_name: str = Field(default="Your Company", alias="COMPANY_NAME")
    invitation_expiration_days: int = Field(default=14, alias="INVITATION_EXPIRATION_DAYS")
    invitation_resend_days: int = Field(default=14, alias="INVITATION_RESEND_DAYS")
    email_worker_poll_seconds: float = Field(default=2.0, alias="EMAIL_WORKER_POLL_SECONDS")

    # Mock authentication: acting user when no X-User-* headers are sent
    default_actor_id: str = Field(
        default="00000000-0000-0000-0000-000000000001", alias="DEFAULT_ACTOR_ID",
    )
    default_actor_name: str = Field(default="System Admin", alias="DEFAULT_ACTOR_NAME")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
    }

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

settings = Settings()
