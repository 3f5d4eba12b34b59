"""OAuth authorization handshake linking a Telegram user to Google Drive."""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from app.core.context import AppContext
from app.core.errors import InvalidStateError
from app.core.oauth_google import GoogleOAuthClient
from app.services.credential_store import CredentialStore

STATE_TOKEN_BYTES = 32

logger = logging.getLogger(__name__)


class AuthorizationService:
    def __init__(self, context: AppContext):
        self._store = CredentialStore(context.session_factory)
        self._oauth = GoogleOAuthClient(context.settings, transport=context.transport)
        self._state_ttl = timedelta(seconds=context.settings.oauth_state_ttl_seconds)

    async def initiate_authorization(self, user_id: int) -> str:
        """Persist a fresh state token for ``user_id`` and return the consent URL.

        Raises ``CredentialStoreError`` if the state cannot be saved.
        """

        await self._store.purge_expired_states(self._state_ttl)
        state_token = secrets.token_urlsafe(STATE_TOKEN_BYTES)
        await self._store.save_state(state_token, user_id)
        logger.info("Issued authorization state", extra={"user_id": user_id})
        return self._oauth.build_authorize_url(state=state_token)

    async def handle_callback(self, state_token: str, auth_code: str) -> int:
        """Redeem ``state_token`` and store the credential exchanged for ``auth_code``.

        The state is deleted before the code exchange, so it cannot be
        redeemed twice whatever happens afterwards. Returns the owning user id.
        """

        state = await self._store.consume_state(state_token)
        if state is None:
            raise InvalidStateError("Unknown or already used state parameter")
        if datetime.now(timezone.utc) - state.created_at > self._state_ttl:
            raise InvalidStateError("Expired state parameter")

        token = await self._oauth.exchange_code(auth_code)
        await self._store.upsert_credential(state.user_id, token)
        logger.info("Stored Drive credential", extra={"user_id": state.user_id})
        return state.user_id

    async def discard_state(self, state_token: str) -> None:
        """Consume a state without exchanging a code, e.g. after a denied consent."""
        await self._store.consume_state(state_token)
