"""Self protocol prover SDK adapter."""

import json
import re
from dataclasses import dataclass
from urllib.parse import urlencode

from verification_orchestrator.domain.errors import InitializationError
from verification_orchestrator.domain.sessions import (
    PresentableRequest,
    SessionDescriptor,
)

SELF_APP_VERSION = 2
DEFAULT_REDIRECT_URL = "https://redirect.self.xyz"
MAX_SCOPE_LENGTH = 31
ENDPOINT_TYPES = frozenset({"https", "staging_https", "celo", "staging_celo"})
USER_ID_TYPES = frozenset({"uuid", "hex"})
_HEX_DIGITS = re.compile(r"[0-9a-f]+")


@dataclass
class SelfProverSdk:
    """Builds Self app descriptors and universal links."""

    redirect_url: str = DEFAULT_REDIRECT_URL

    async def build_request(self, descriptor: SessionDescriptor) -> PresentableRequest:
        """Return the Self app payload and universal link for a session."""
        payload = build_self_app(descriptor)
        try:
            encoded = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise InitializationError(f"Invalid Self app payload: {exc}") from exc
        link = f"{self.redirect_url}?{urlencode({'selfApp': encoded})}"
        return PresentableRequest(
            session_id=descriptor.session_id,
            payload=payload,
            universal_link=link,
        )


def build_self_app(descriptor: SessionDescriptor) -> dict[str, object]:
    """Validate the app identity and build the Self app descriptor."""
    app = descriptor.app
    if not app.app_name.strip():
        raise InitializationError("Self app name must not be empty")
    if not app.scope.strip():
        raise InitializationError("Self scope must not be empty")
    if len(app.scope) > MAX_SCOPE_LENGTH:
        raise InitializationError(
            f"Self scope must be at most {MAX_SCOPE_LENGTH} characters"
        )
    if not app.endpoint:
        raise InitializationError("Self endpoint must not be empty")
    if app.endpoint_type not in ENDPOINT_TYPES:
        raise InitializationError(f"Unsupported endpoint type: {app.endpoint_type}")
    if app.user_id_type not in USER_ID_TYPES:
        raise InitializationError(f"Unsupported user id type: {app.user_id_type}")
    return {
        "version": SELF_APP_VERSION,
        "appName": app.app_name,
        "scope": app.scope,
        "endpoint": app.endpoint,
        "endpointType": app.endpoint_type,
        "logoBase64": app.logo_url,
        "userId": _user_id(descriptor.session_id, app.user_id_type),
        "userIdType": app.user_id_type,
        "userDefinedData": app.user_defined_data,
        "sessionId": descriptor.session_id,
        "devMode": app.dev_mode,
        "disclosures": descriptor.policy.disclosures(),
    }


def _user_id(session_id: str, user_id_type: str) -> str:
    """Render the session id in the configured user id format."""
    if user_id_type == "hex":
        digits = session_id.replace("-", "").lower()
        if not _HEX_DIGITS.fullmatch(digits):
            raise InitializationError(
                f"Session id {session_id!r} cannot be rendered as a hex user id"
            )
        return "0x" + digits
    return session_id
