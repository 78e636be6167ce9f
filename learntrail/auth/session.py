"""Client-side session state.

Holds the learner's access token and tells subscribers when the learner
signs in or out. The progress engine only needs the authenticated flag,
the bearer token for remote calls and the ability to sign the learner out.
"""

from collections.abc import Callable

from learntrail.core.logging import get_logger


logger = get_logger(__name__)

AuthListener = Callable[[bool], None]


class SessionState:
    """Observable authentication state."""

    def __init__(self, access_token: str | None = None, learner_id: str | None = None):
        self._access_token = access_token
        self.learner_id = learner_id
        self._listeners: list[AuthListener] = []

    @property
    def is_authenticated(self) -> bool:
        return bool(self._access_token)

    @property
    def access_token(self) -> str | None:
        return self._access_token

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener and call it right away with the current state.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)
        listener(self.is_authenticated)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def sign_in(self, access_token: str, learner_id: str | None = None) -> None:
        """Store a new token; listeners hear about it if the state changed."""
        was_authenticated = self.is_authenticated
        self._access_token = access_token
        self.learner_id = learner_id
        logger.info("session_signed_in", learner_id=learner_id)
        if not was_authenticated:
            self._notify()

    def sign_out(self) -> None:
        """Drop the token; listeners hear about it if the state changed."""
        was_authenticated = self.is_authenticated
        self._access_token = None
        self.learner_id = None
        if was_authenticated:
            logger.info("session_signed_out")
            self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.is_authenticated)
