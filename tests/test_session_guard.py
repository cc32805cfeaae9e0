from datetime import datetime, timedelta

from sqlmodel import select

from app.core.security import create_access_token
from app.models.auth_session import AuthSession
from app.services.session_guard import SessionGuard
from app.services.sessions import SessionProvider


def test_no_session_is_denied_without_sign_out(users, anonymous):
    decision = SessionGuard(users=users, sessions=anonymous).check()

    assert decision.allowed is False
    assert decision.sign_out is False


def test_active_user_is_allowed(make_user, users, signed_in):
    user = make_user()

    decision = SessionGuard(users=users, sessions=signed_in(user)).check()

    assert decision.allowed is True
    assert decision.user.id == user.id


def test_deleted_user_forces_sign_out(make_user, users, signed_in, db_session):
    user = make_user()
    sessions = signed_in(user)
    db_session.delete(users.find_by_id(user.id))
    db_session.commit()

    decision = SessionGuard(users=users, sessions=sessions).check()

    assert decision.allowed is False
    assert decision.sign_out is True
    assert sessions.current_session() is None


def test_deactivated_user_forces_sign_out(make_user, users, signed_in):
    user = make_user()
    sessions = signed_in(user)
    users.update_user(user.id, is_active=False)

    decision = SessionGuard(users=users, sessions=sessions).check()

    assert decision.sign_out is True
    assert sessions.current_session() is None


def test_garbage_token_forces_sign_out(users, db_session, settings):
    sessions = SessionProvider(db_session, settings, "not-a-jwt")

    decision = SessionGuard(users=users, sessions=sessions).check()

    assert decision.allowed is False
    assert decision.sign_out is True


def test_token_without_session_record_is_rejected(make_user, users, db_session, settings):
    user = make_user()
    forged = create_access_token(
        {"sub": str(user.id), "jti": "f" * 32},
        expires_delta=timedelta(minutes=5),
        secret_key=settings.secret_key,
    )

    decision = SessionGuard(users=users, sessions=SessionProvider(db_session, settings, forged)).check()

    assert decision.sign_out is True


def test_revoked_session_is_rejected(make_user, users, signed_in):
    user = make_user()
    sessions = signed_in(user)
    sessions.revoke_user_sessions(user.id)

    assert sessions.current_session() is None
    assert SessionGuard(users=users, sessions=sessions).check().sign_out is True


def test_expired_session_record_is_rejected(make_user, users, signed_in, db_session):
    user = make_user()
    sessions = signed_in(user)
    record = db_session.exec(select(AuthSession).where(AuthSession.user_id == user.id)).one()
    record.expires_at = datetime.utcnow() - timedelta(seconds=1)
    db_session.add(record)
    db_session.commit()

    assert sessions.current_session() is None


def test_revoke_user_sessions_can_keep_current(make_user, users, signed_in):
    user = make_user()
    phone = signed_in(user)
    laptop = signed_in(user)

    revoked = laptop.revoke_user_sessions(user.id, keep_jti=laptop.current_session().jti)

    assert revoked == 1
    assert laptop.current_session() is not None
    assert phone.current_session() is None
