import types

import pytest
from fastapi import HTTPException

from freshleap.auth import service as svc
from freshleap.models import Farmer, Role, User


def _auth_result(uid="11111111-1111-1111-1111-111111111111", email="new@example.com", token=None, metadata=None):
    session = types.SimpleNamespace(access_token=token, refresh_token="r") if token else None
    user = types.SimpleNamespace(id=uid, email=email, user_metadata=metadata or {})
    return types.SimpleNamespace(user=user, session=session)


FARM = {"farm_name": "Green Acres", "farm_location": "Hilltown", "contact_number": "+1 555 0101"}


def test_signup_customer_creates_unverified_profile(db, monkeypatch):
    calls = {}

    def fake_sign_up_account(email, password, options_data=None, email_redirect_to=None):
        calls["email"] = email
        calls["options_data"] = options_data
        return _auth_result(email=email)

    monkeypatch.setattr(svc, "sign_up_account", fake_sign_up_account)

    res = svc.signup(db, username="newbie", email=" New@Example.com ", password="Str0ng!Pass", role="customer")
    assert res["status_code"] == 201
    assert "verify" in res["message"].lower()
    assert res["session"] is None
    assert calls["email"] == "new@example.com"
    assert calls["options_data"] == {"username": "newbie", "role": "customer"}

    user = db.query(User).filter(User.username == "newbie").one()
    assert user.is_verified is False
    assert user.role == Role.customer


def test_signup_farmer_requires_farm_details(db):
    with pytest.raises(HTTPException) as exc:
        svc.signup(db, username="farmy", email="f@example.com", password="x", role="farmer", farm_name="Only name")
    assert exc.value.status_code == 400


def test_signup_farmer_creates_farm(db, monkeypatch):
    monkeypatch.setattr(svc, "sign_up_account", lambda **kw: _auth_result(email=kw["email"], token="abc"))

    res = svc.signup(db, username="farmy", email="f@example.com", password="x", role="farmer", **FARM)
    assert res["status_code"] == 201
    assert res["session"]["access_token"] == "abc"

    farmer = db.query(Farmer).one()
    assert farmer.farm_name == "Green Acres"
    assert farmer.user.is_verified is True


def test_signup_verified_email_conflict(db, make_user):
    make_user("carol")
    with pytest.raises(HTTPException) as exc:
        svc.signup(db, username="other", email="carol@example.com", password="x", role="customer")
    assert exc.value.status_code == 409
    assert exc.value.detail == "Email already in use"


def test_signup_username_taken(db, make_user):
    make_user("carol")
    with pytest.raises(HTTPException) as exc:
        svc.signup(db, username="carol", email="someone@example.com", password="x", role="customer")
    assert exc.value.status_code == 409
    assert exc.value.detail == "Username is already taken"


def test_signup_unverified_account_resends_code(db, make_user, monkeypatch):
    make_user("dave", verified=False)
    sent = []
    monkeypatch.setattr(svc, "resend_signup", lambda email, redirect=None: sent.append(email))
    monkeypatch.setattr(svc, "sign_up_account", lambda **kw: pytest.fail("no new GoTrue account expected"))

    res = svc.signup(db, username="dave2", email="dave@example.com", password="x", role="customer")
    assert res["status_code"] == 200
    assert sent == ["dave@example.com"]
    assert db.query(User).filter(User.email == "dave@example.com").one().username == "dave2"


def test_signup_gotrue_already_registered(db, monkeypatch):
    def fake_sign_up(**kw):
        raise Exception("User already registered")

    monkeypatch.setattr(svc, "sign_up_account", fake_sign_up)
    with pytest.raises(HTTPException) as exc:
        svc.signup(db, username="ghost", email="ghost@example.com", password="x", role="customer")
    assert exc.value.status_code == 409


def test_verify_email_marks_account(db, make_user, monkeypatch):
    make_user("erin", verified=False)
    monkeypatch.setattr(svc, "verify_otp", lambda email, token, otp_type: _auth_result(token="tok"))

    res = svc.verify_email(db, "123456", email="erin@example.com")
    assert res.success is True
    assert res.message == "Account verified successfully"
    db.expire_all()
    assert db.query(User).filter(User.username == "erin").one().is_verified is True


def test_verify_email_bad_code(db, make_user, monkeypatch):
    make_user("erin", verified=False)

    def fake_verify(email, token, otp_type):
        raise Exception("Token has expired or is invalid")

    monkeypatch.setattr(svc, "verify_otp", fake_verify)
    with pytest.raises(HTTPException) as exc:
        svc.verify_email(db, "000000", username="erin")
    assert exc.value.status_code == 400


def test_verify_email_unknown_and_already_verified(db, make_user):
    with pytest.raises(HTTPException) as exc:
        svc.verify_email(db, "123456", email="nobody@example.com")
    assert exc.value.status_code == 404

    make_user("frank")
    res = svc.verify_email(db, "123456", email="frank@example.com")
    assert res.success is True
    assert res.message == "Email is already verified"


def test_login_by_username_resolves_email(db, make_user, monkeypatch):
    user = make_user("gina")
    calls = {}

    def fake_sign_in(email, password):
        calls["email"] = email
        return _auth_result(uid=user.user_id, email=email, token="t")

    monkeypatch.setattr(svc, "sign_in_password", fake_sign_in)
    res = svc.login(db, "gina", "pwd")
    assert res.success is True
    assert calls["email"] == "gina@example.com"
    assert res.user["username"] == "gina"
    assert res.access_token == "t"


def test_login_unknown_username(db):
    res = svc.login(db, "nobody", "pwd")
    assert res.success is False
    assert res.error == "Invalid credentials"


def test_login_exception_is_handled(db, monkeypatch):
    def fake_sign_in(email, password):
        raise RuntimeError("boom")

    monkeypatch.setattr(svc, "sign_in_password", fake_sign_in)
    res = svc.login(db, "x@example.com", "z")
    assert res.success is False
    assert "Invalid credentials" in res.error


def test_sync_user_profile_creates_missing_profile(db, make_user):
    make_user("henry")
    profile = svc.sync_user_profile(db, {
        "id": "22222222-2222-2222-2222-222222222222",
        "email": "henry@other.test",
        "metadata": {"username": "henry", "role": "farmer"},
    })
    # username déjà pris: suffixe aléatoire
    assert profile.username.startswith("henry-")
    assert profile.role == Role.farmer
    assert profile.is_verified is True


def test_get_user_from_token_normalizes(db, farmer_user, monkeypatch):
    monkeypatch.setattr(svc, "_repo_get_user_from_token", lambda token: {
        "id": farmer_user.user_id, "email": farmer_user.email, "user_metadata": {"role": "customer"},
    })
    user = svc.get_user_from_token(db, "tok")
    assert user["id"] == farmer_user.user_id
    # Le profil local fait foi pour le rôle
    assert user["role"] == "farmer"
    assert user["farmer_id"] == farmer_user.farmer.farmer_id
    assert user["token"] == "tok"


def test_get_user_from_token_without_id(db, monkeypatch):
    monkeypatch.setattr(svc, "_repo_get_user_from_token", lambda token: {})
    assert svc.get_user_from_token(db, "tok") == {}


def test_update_password_reports_gotrue_error(monkeypatch):
    resp = types.SimpleNamespace(status_code=422, json=lambda: {"msg": "Password should be different"}, text="")
    monkeypatch.setattr(svc, "_update_user_password", lambda token, pwd: resp)
    res = svc.update_password("tok", "Same1!pass")
    assert res.success is False
    assert "Password should be different" in res.error

    ok = types.SimpleNamespace(status_code=200)
    monkeypatch.setattr(svc, "_update_user_password", lambda token, pwd: ok)
    assert svc.update_password("tok", "New1!pass").success is True
