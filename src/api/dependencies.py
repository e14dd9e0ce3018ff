from fastapi import Path, Security
from fastapi.security import APIKeyHeader

from src.config import settings
from src.constants import STELLAR_ADDRESS_PATTERN
from src.exceptions import AuthenticationError


API_KEY_HEADER = APIKeyHeader(name="Authorization", auto_error=False)
API_KEY_SECURITY = Security(API_KEY_HEADER)

STELLAR_ADDRESS_PATH = Path(
    ...,
    pattern=STELLAR_ADDRESS_PATTERN,
    description="Stellar public key (G...)",
)


async def get_api_key(api_key_header: str = API_KEY_SECURITY) -> str:
    """Validate the admin API key from header."""
    if not api_key_header:
        raise AuthenticationError(detail="API key is missing")

    # Accept both "Bearer {token}" and the bare token
    if api_key_header.startswith("Bearer "):
        token = api_key_header.replace("Bearer ", "")
    else:
        token = api_key_header

    if token != settings.API_AUTH_TOKEN.get_secret_value():
        raise AuthenticationError(detail="Invalid API key")

    return token
