"""Tests for the observable session state."""

from unittest.mock import Mock

from learntrail.auth.session import SessionState


class TestSessionState:
    """Tests for sign-in/sign-out notifications."""

    def test_subscribe_emits_current_state(self) -> None:
        listener = Mock()
        SessionState(access_token="t").subscribe(listener)
        listener.assert_called_once_with(True)

    def test_notifies_only_on_change(self) -> None:
        session = SessionState()
        listener = Mock()
        session.subscribe(listener)

        session.sign_in("t1", "learner-1")
        session.sign_in("t2", "learner-1")
        session.sign_out()
        session.sign_out()

        assert [call.args[0] for call in listener.call_args_list] == [False, True, False]
        assert session.access_token is None
        assert session.learner_id is None

    def test_unsubscribe(self) -> None:
        session = SessionState()
        listener = Mock()
        unsubscribe = session.subscribe(listener)
        unsubscribe()
        session.sign_in("t")
        listener.assert_called_once_with(False)
