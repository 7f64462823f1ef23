"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from verification_orchestrator.domain.policy import AppIdentity, DisclosurePolicy

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    backend_url: str
    admin_token: str
    self_app_name: str = "Twilight Self Passport"
    self_scope: str = "twilight-relayer-passport"
    self_logo_url: str = "https://i.postimg.cc/mrmVf9hm/self.png"
    self_endpoint_type: str = "staging_https"
    self_user_id_type: str = "uuid"
    self_user_defined_data: str = "Bonjour Cannes!"
    self_redirect_url: str = "https://redirect.self.xyz"
    self_dev_mode: bool = False
    prover_endpoint_path: str = "/api/verify"
    prover_source: str = "self-protocol"
    policy_minimum_age: int | None = 18
    policy_ofac: bool = False
    policy_excluded_countries: str | None = None
    policy_nationality: bool = True
    policy_gender: bool = True
    policy_name: bool = False
    policy_date_of_birth: bool = False
    policy_issuing_state: bool = False
    policy_passport_number: bool = False
    policy_expiry_date: bool = False
    health_timeout_seconds: float = 5
    persist_timeout_seconds: float = 15
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_excluded_countries(raw: str | None) -> tuple[str, ...]:
    """Parse a comma-separated list of ISO-3166 alpha-3 country codes."""
    if raw is None:
        return ()
    codes: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip().upper()
        if value and value not in codes:
            codes.append(value)
    return tuple(codes)


def build_policy(settings: Settings) -> DisclosurePolicy:
    """Build the session disclosure policy from settings."""
    return DisclosurePolicy(
        minimum_age=settings.policy_minimum_age,
        ofac=settings.policy_ofac,
        excluded_countries=parse_excluded_countries(
            settings.policy_excluded_countries
        ),
        nationality=settings.policy_nationality,
        gender=settings.policy_gender,
        name=settings.policy_name,
        date_of_birth=settings.policy_date_of_birth,
        issuing_state=settings.policy_issuing_state,
        passport_number=settings.policy_passport_number,
        expiry_date=settings.policy_expiry_date,
    )


def build_app_identity(settings: Settings) -> AppIdentity:
    """Build the static app identity shown to the prover."""
    endpoint = f"{settings.backend_url.rstrip('/')}{settings.prover_endpoint_path}"
    return AppIdentity(
        app_name=settings.self_app_name,
        scope=settings.self_scope,
        endpoint=endpoint,
        logo_url=settings.self_logo_url,
        endpoint_type=settings.self_endpoint_type,
        user_id_type=settings.self_user_id_type,
        user_defined_data=settings.self_user_defined_data,
        dev_mode=settings.self_dev_mode,
    )
