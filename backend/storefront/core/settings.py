from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices, model_validator


TENANT_SOURCES = ("auto", "token", "header", "path", "subdomain")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Storefront API"
    ENV: str = Field(default="lab", validation_alias=AliasChoices("STOREFRONT_ENV", "ENV"))  # lab|prod
    LOG_LEVEL: str = Field(default="INFO", validation_alias=AliasChoices("STOREFRONT_LOG_LEVEL", "LOG_LEVEL"))

    DATABASE_URL: str = Field(default="sqlite:///./lab.db", validation_alias=AliasChoices("STOREFRONT_DATABASE_URL", "DATABASE_URL"))
    DB_AUTO_CREATE: bool = Field(default=True, validation_alias=AliasChoices("STOREFRONT_DB_AUTO_CREATE", "DB_AUTO_CREATE"))

    # Auth (JWT)
    AUTH_JWT_SECRET: str = Field(default="", validation_alias=AliasChoices("STOREFRONT_AUTH_JWT_SECRET", "AUTH_JWT_SECRET", "JWT_SECRET"))
    AUTH_JWT_EXPIRE_MINUTES: int = Field(default=60 * 24 * 7, validation_alias=AliasChoices("STOREFRONT_AUTH_JWT_EXPIRE_MINUTES", "AUTH_JWT_EXPIRE_MINUTES", "JWT_EXPIRES_MINUTES"))

    # Tenancy
    TENANT_SOURCE: str = Field(default="auto", validation_alias=AliasChoices("STOREFRONT_TENANT_SOURCE", "TENANT_SOURCE"))
    TENANT_HEADER: str = Field(default="x-tenant-id", validation_alias=AliasChoices("STOREFRONT_TENANT_HEADER", "TENANT_HEADER"))

    # Checkout
    ALLOW_GUEST_CHECKOUT: bool = Field(default=False, validation_alias=AliasChoices("STOREFRONT_ALLOW_GUEST_CHECKOUT", "ALLOW_GUEST_CHECKOUT"))

    # HTTP edge
    CORS_ORIGINS: str = Field(default="http://localhost:5173", validation_alias=AliasChoices("STOREFRONT_CORS_ORIGINS", "CORS_ORIGINS", "CORS_ORIGIN"))
    RATE_LIMIT_ENABLED: bool = Field(default=True, validation_alias=AliasChoices("STOREFRONT_RATE_LIMIT_ENABLED", "RATE_LIMIT_ENABLED"))
    RATE_LIMIT_WINDOW_S: int = Field(default=900, validation_alias=AliasChoices("STOREFRONT_RATE_LIMIT_WINDOW_S", "RATE_LIMIT_WINDOW_S"))
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=100, validation_alias=AliasChoices("STOREFRONT_RATE_LIMIT_MAX_REQUESTS", "RATE_LIMIT_MAX_REQUESTS"))

    # Only for lab: leaks exception text in 500 bodies
    EXPOSE_ERROR_DETAILS: bool = Field(default=False, validation_alias=AliasChoices("STOREFRONT_EXPOSE_ERROR_DETAILS", "EXPOSE_ERROR_DETAILS"))

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @model_validator(mode="after")
    def _security_invariants(self):
        # Fail-fast: settings contract
        if self.ENV not in ("lab", "prod"):
            raise ValueError(f"ENV must be 'lab' or 'prod', got {self.ENV!r}")

        source = (self.TENANT_SOURCE or "").strip().lower()
        if source not in TENANT_SOURCES:
            raise ValueError(f"TENANT_SOURCE must be one of {', '.join(TENANT_SOURCES)}")
        self.TENANT_SOURCE = source
        self.TENANT_HEADER = (self.TENANT_HEADER or "x-tenant-id").strip().lower()

        sec = (self.AUTH_JWT_SECRET or "").strip()
        if self.ENV == "prod":
            if not sec:
                raise ValueError("SECURITY: AUTH_JWT_SECRET is required when ENV=prod")
            if len(sec) < 32:
                raise ValueError("SECURITY: AUTH_JWT_SECRET too short (min 32 chars)")
            if self.EXPOSE_ERROR_DETAILS:
                raise ValueError("SECURITY: EXPOSE_ERROR_DETAILS must be off when ENV=prod")
        # strip accidental whitespace
        self.AUTH_JWT_SECRET = sec

        if self.AUTH_JWT_EXPIRE_MINUTES <= 0:
            raise ValueError("AUTH_JWT_EXPIRE_MINUTES must be positive")

        return self


settings = Settings()
