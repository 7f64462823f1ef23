"""Disclosure policy and app identity models."""

from pydantic import BaseModel, ConfigDict, Field

_REVEAL_FIELDS = (
    "nationality",
    "gender",
    "name",
    "date_of_birth",
    "issuing_state",
    "passport_number",
    "expiry_date",
)


class DisclosurePolicy(BaseModel):
    """Attributes and eligibility checks a session asks the prover for."""

    model_config = ConfigDict(frozen=True)

    minimum_age: int | None = Field(default=None, ge=0, le=125)
    ofac: bool = False
    excluded_countries: tuple[str, ...] = ()
    nationality: bool = False
    gender: bool = False
    name: bool = False
    date_of_birth: bool = False
    issuing_state: bool = False
    passport_number: bool = False
    expiry_date: bool = False

    def disclosures(self) -> dict[str, object]:
        """Return the policy in the prover's disclosure format."""
        payload: dict[str, object] = {}
        if self.minimum_age is not None:
            payload["minimumAge"] = self.minimum_age
        payload["ofac"] = self.ofac
        if self.excluded_countries:
            payload["excludedCountries"] = list(self.excluded_countries)
        for field_name in _REVEAL_FIELDS:
            if getattr(self, field_name):
                payload[field_name] = True
        return payload


class AppIdentity(BaseModel):
    """Static identity of the requesting application."""

    model_config = ConfigDict(frozen=True)

    app_name: str
    scope: str
    endpoint: str
    logo_url: str
    endpoint_type: str = "staging_https"
    user_id_type: str = "uuid"
    user_defined_data: str = ""
    dev_mode: bool = False
