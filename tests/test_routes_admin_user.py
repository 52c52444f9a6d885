"""
Tests for staff account management and avatar replacement.
"""

from app.extensions import db
from app.models import AdminUser, PendingAssetDeletion

from conftest import failing_file, image_file, login


def add_user(client, **fields):
    data = {'username': 'staff', 'password': 'secret123', 'role': 'operator'}
    data.update(fields)
    return client.post('/api/admin-user/add', data=data, content_type='multipart/form-data')


class TestAccounts:

    def test_create_with_avatar(self, admin_client, cloud):
        resp = add_user(admin_client, email='Staff@Clinic.test', avatar=image_file('me.jpg'))

        assert resp.status_code == 201
        user = resp.get_json()['user']
        assert user['email'] == 'staff@clinic.test'
        assert user['avatar_url'].startswith('https://res.cloudinary.com/')
        assert 'password_hash' not in user
        (record,) = cloud.assets.values()
        assert record['public_id'].startswith('admin-user/')
        assert record['options']['crop'] == 'thumb'

    def test_duplicate_username(self, admin_client):
        add_user(admin_client)
        resp = add_user(admin_client)
        assert resp.status_code == 409
        assert resp.get_json() == {'error': 'Username or email already exists'}

    def test_validation(self, admin_client):
        assert add_user(admin_client, username='ab').status_code == 400
        assert add_user(admin_client, password='123').status_code == 400
        assert add_user(admin_client, role='owner').status_code == 400
        assert add_user(admin_client, email='not-an-email').status_code == 400

    def test_only_superadmin_creates_superadmin(self, client, make_user):
        make_user(username='manager', role='admin')
        login(client, username='manager')
        assert add_user(client, role='superadmin').status_code == 403
        assert add_user(client, role='admin').status_code == 201

    def test_operator_cannot_manage_accounts(self, client, make_user):
        make_user(username='op', role='operator')
        login(client, username='op')
        assert client.get('/api/admin-user').status_code == 403

    def test_list_accounts(self, admin_client):
        add_user(admin_client)
        names = {u['username'] for u in admin_client.get('/api/admin-user').get_json()}
        assert names == {'admin', 'staff'}

    def test_avatar_upload_failure_creates_nothing(self, admin_client, app):
        resp = add_user(admin_client, avatar=failing_file())
        assert resp.status_code == 500
        with app.app_context():
            assert AdminUser.query.filter_by(username='staff').first() is None

    def test_delete_removes_avatar(self, admin_client, app, cloud):
        user_id = add_user(admin_client, avatar=image_file()).get_json()['user']['id']

        resp = admin_client.delete(f'/api/admin-user/{user_id}/delete')

        assert resp.status_code == 200
        assert cloud.assets == {}
        with app.app_context():
            assert db.session.get(AdminUser, user_id) is None
            assert PendingAssetDeletion.query.count() == 0

    def test_cannot_delete_self(self, admin_client, app):
        with app.app_context():
            me = AdminUser.query.filter_by(username='admin').one().id
        resp = admin_client.delete(f'/api/admin-user/{me}/delete')
        assert resp.status_code == 400

    def test_delete_missing_user(self, admin_client):
        resp = admin_client.delete('/api/admin-user/999/delete')
        assert resp.status_code == 404
        assert resp.get_json() == {'error': 'User not found'}


class TestProfile:

    def test_new_avatar_replaces_old(self, admin_client, cloud):
        first = admin_client.put('/api/admin-user/profile', data={'avatar': image_file('a.jpg')},
                                 content_type='multipart/form-data').get_json()['user']
        old_public_id = next(iter(cloud.assets))

        second = admin_client.put('/api/admin-user/profile', data={'avatar': image_file('b.jpg')},
                                  content_type='multipart/form-data').get_json()['user']

        assert second['avatar_url'] != first['avatar_url']
        assert old_public_id not in cloud.assets
        assert len(cloud.assets) == 1
        assert cloud.destroyed() == [old_public_id]

    def test_update_username_and_email(self, admin_client):
        resp = admin_client.put('/api/admin-user/profile', data={'username': 'boss', 'email': 'boss@clinic.test'},
                                content_type='multipart/form-data')
        assert resp.status_code == 200
        assert resp.get_json()['user']['username'] == 'boss'

    def test_username_taken(self, admin_client, make_user):
        make_user(username='taken')
        resp = admin_client.put('/api/admin-user/profile', data={'username': 'taken'},
                                content_type='multipart/form-data')
        assert resp.status_code == 409

    def test_change_password(self, admin_client):
        resp = admin_client.post('/api/admin-user/profile/change-password',
                                 json={'currentPassword': 'secret123', 'newPassword': 'newsecret'})
        assert resp.get_json() == {'message': 'Password updated'}

        admin_client.post('/api/admin/logout')
        assert login(admin_client, password='newsecret').status_code == 200

    def test_change_password_wrong_current(self, admin_client):
        resp = admin_client.post('/api/admin-user/profile/change-password',
                                 json={'currentPassword': 'nope', 'newPassword': 'newsecret'})
        assert resp.status_code == 403
        assert resp.get_json() == {'error': 'Current password is incorrect'}

    def test_change_password_missing_fields(self, admin_client):
        resp = admin_client.post('/api/admin-user/profile/change-password', json={})
        assert resp.status_code == 400
