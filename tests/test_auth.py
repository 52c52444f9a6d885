"""
Tests for session login / logout, lockout and the CSRF token endpoint.
"""

from app.extensions import db
from app.models import AdminUser

from conftest import login


def test_login_success(client, make_user):
    make_user(avatar_url='https://res.cloudinary.com/demo/image/upload/v1/admin-user/me.jpg')
    resp = login(client)

    assert resp.status_code == 200
    assert resp.get_json() == {
        'ok': True,
        'role': 'superadmin',
        'username': 'admin',
        'avatarUrl': 'https://res.cloudinary.com/demo/image/upload/v1/admin-user/me.jpg',
    }
    assert client.get('/api/admin-user/profile').status_code == 200


def test_unknown_user(client):
    resp = login(client, username='nobody')
    assert resp.status_code == 401
    assert resp.get_json() == {'error': 'Invalid credentials'}


def test_wrong_password_counts_and_locks(client, app, make_user):
    user_id = make_user()
    for _ in range(app.config['LOGIN_MAX_FAILED_ATTEMPTS']):
        assert login(client, password='wrong').status_code == 401

    resp = login(client)
    assert resp.status_code == 403
    with app.app_context():
        user = db.session.get(AdminUser, user_id)
        assert user.is_locked()
        assert not user.is_active


def test_success_resets_failed_attempts(client, app, make_user):
    user_id = make_user()
    login(client, password='wrong')
    login(client)
    with app.app_context():
        user = db.session.get(AdminUser, user_id)
        assert user.failed_login_attempts == 0
        assert user.last_login is not None


def test_disabled_account(client, make_user):
    make_user(active=False)
    resp = login(client)
    assert resp.status_code == 403
    assert resp.get_json() == {'error': 'Account disabled'}


def test_malformed_body(client):
    resp = client.post('/api/admin/login', json=['admin'])
    assert resp.status_code == 401


def test_logout(admin_client):
    assert admin_client.post('/api/admin/logout').get_json() == {'ok': True}
    assert admin_client.get('/api/admin-user/profile').status_code == 401


def test_csrf_token(client):
    body = client.get('/api/admin/csrf').get_json()
    assert body['csrf_token']


def test_password_is_hashed(app, make_user):
    user_id = make_user()
    with app.app_context():
        user = db.session.get(AdminUser, user_id)
        assert user.password_hash != 'secret123'
        assert user.verify_password('secret123')
        assert 'password_hash' not in user.to_dict()
