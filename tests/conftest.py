"""
Shared fixtures.

Provides a Flask test app on in-memory SQLite and an in-memory stand-in for
the Cloudinary uploader / admin API, patched in with monkeypatch so no test
touches the network.
"""

import io
import itertools
import threading
from datetime import datetime, timedelta

import cloudinary.api
import cloudinary.uploader
import pytest

from app import create_app
from app.extensions import db
from app.models import AdminUser


FAIL_MARKER = b'FAIL'
BASE_TIME = datetime(2024, 1, 1)


class FakeCloudinary:
    """Thread-safe in-memory asset host."""

    def __init__(self):
        self.assets = {}
        self.events = []
        self.lock = threading.Lock()
        self.seq = itertools.count(1)
        self.fail_destroy = set()
        self.list_error = False

    def _record(self, folder, fmt='webp'):
        n = next(self.seq)
        public_id = f'{folder}/img{n}'
        return {
            'asset_id': f'asset-{n}',
            'public_id': public_id,
            'format': fmt,
            'width': 800,
            'height': 600,
            'bytes': 1024,
            'secure_url': f'https://res.cloudinary.com/demo/image/upload/v1700000000/{public_id}.{fmt}',
            'created_at': (BASE_TIME + timedelta(seconds=n)).isoformat() + 'Z',
            '_seq': n,
        }

    def add(self, folder):
        """Seed an asset directly, bypassing the upload endpoint."""
        with self.lock:
            rec = self._record(folder)
            self.assets[rec['public_id']] = rec
        return rec

    def url(self, public_id):
        return self.assets[public_id]['secure_url']

    # --- patched SDK calls -------------------------------------------------

    def upload(self, file, folder=None, resource_type=None, **options):
        data = file.read()
        if data.startswith(FAIL_MARKER):
            with self.lock:
                self.events.append(('upload_failed', folder))
            raise RuntimeError('upstream rejected the file')
        with self.lock:
            rec = self._record(folder)
            rec['options'] = options
            self.assets[rec['public_id']] = rec
            self.events.append(('upload', rec['public_id']))
        return {k: v for k, v in rec.items() if not k.startswith('_') and k != 'options'}

    def resources(self, type=None, resource_type=None, prefix='', max_results=10,
                  next_cursor=None, direction='desc'):
        if self.list_error:
            raise RuntimeError('admin api down')
        with self.lock:
            items = sorted(
                (r for r in self.assets.values() if r['public_id'].startswith(prefix)),
                key=lambda r: r['_seq'],
                reverse=(direction == 'desc'),
            )
        start = int(next_cursor or 0)
        page = items[start:start + max_results]
        result = {'resources': [{k: v for k, v in r.items() if not k.startswith('_') and k != 'options'}
                                for r in page]}
        if start + max_results < len(items):
            result['next_cursor'] = str(start + max_results)
        return result

    def destroy(self, public_id, resource_type=None, invalidate=None):
        with self.lock:
            self.events.append(('destroy', public_id))
            if public_id in self.fail_destroy:
                raise RuntimeError('upstream delete failed')
            if self.assets.pop(public_id, None) is None:
                return {'result': 'not found'}
        return {'result': 'ok'}

    def delete_resources(self, public_ids, resource_type=None, invalidate=None):
        deleted = {}
        with self.lock:
            for public_id in public_ids:
                self.events.append(('destroy', public_id))
                deleted[public_id] = 'deleted' if self.assets.pop(public_id, None) else 'not_found'
        return {'deleted': deleted}

    def destroyed(self):
        return [pid for kind, pid in self.events if kind == 'destroy']


@pytest.fixture
def cloud(monkeypatch):
    fake = FakeCloudinary()
    monkeypatch.setattr(cloudinary.uploader, 'upload', fake.upload)
    monkeypatch.setattr(cloudinary.uploader, 'destroy', fake.destroy)
    monkeypatch.setattr(cloudinary.api, 'resources', fake.resources)
    monkeypatch.setattr(cloudinary.api, 'delete_resources', fake.delete_resources)
    return fake


@pytest.fixture
def app(cloud):
    """Flask test app with fresh tables."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create an admin user and return its id."""
    def _make(username='admin', password='secret123', role='superadmin', **kwargs):
        with app.app_context():
            user = AdminUser(username=username, password=password, role=role, **kwargs)
            db.session.add(user)
            db.session.commit()
            return user.id
    return _make


def login(client, username='admin', password='secret123'):
    return client.post('/api/admin/login', json={'username': username, 'password': password})


@pytest.fixture
def admin_client(client, make_user):
    """Test client logged in as a superadmin."""
    make_user()
    resp = login(client)
    assert resp.status_code == 200
    return client


def image_file(name='photo.jpg', data=b'\xff\xd8\xff fake jpeg', content_type='image/jpeg'):
    """A (stream, filename, content_type) tuple for multipart test requests."""
    return (io.BytesIO(data), name, content_type)


def failing_file(name='broken.jpg'):
    return image_file(name, FAIL_MARKER + b' payload')
