"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Environment variables that override values from the INI file.
ENV_OVERRIDES = {
    "store_url": "PORTFOLIO_STORE_URL",
    "store_key": "PORTFOLIO_STORE_KEY",
    "mail_service_id": "PORTFOLIO_MAIL_SERVICE_ID",
    "mail_template_id": "PORTFOLIO_MAIL_TEMPLATE_ID",
    "mail_public_key": "PORTFOLIO_MAIL_PUBLIC_KEY",
    "request_timeout": "PORTFOLIO_REQUEST_TIMEOUT",
}


class AppConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Store
    store_url: str
    store_key: str
    request_timeout: int = 30

    # Mail relay defaults (a saved Settings record takes precedence)
    mail_service_id: str = ""
    mail_template_id: str = ""
    mail_public_key: str = ""

    # Internal fields not loaded from INI file
    config_path: str = Field(..., repr=False)

    @field_validator("store_url")
    @classmethod
    def validate_store_url(cls, v: str) -> str:
        """Ensures the store URL is an absolute http(s) URL."""
        if not v:
            raise ValueError(
                "Store URL is not configured. Run 'portfolio-admin init' or set "
                "PORTFOLIO_STORE_URL."
            )
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Store URL must start with http:// or https://, got: {v}")
        return v.rstrip("/")

    @field_validator("store_key")
    @classmethod
    def validate_store_key(cls, v: str) -> str:
        if not v:
            raise ValueError(
                "Store key is not configured. Run 'portfolio-admin init' or set "
                "PORTFOLIO_STORE_KEY."
            )
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Ensures a reasonable request timeout."""
        if v < 1 or v > 300:
            raise ValueError("Request timeout must be between 1 and 300 seconds.")
        return v

    @property
    def mail_configured(self) -> bool:
        return bool(
            self.mail_service_id and self.mail_template_id and self.mail_public_key
        )

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
