"""
后台 JSON API 的 HTTP 客户端

基于 requests.Session：登录后的会话 cookie 与 CSRF token 由 Session 保存，
所有非 2xx 响应统一抛出 ClientError。
"""
import logging
from typing import Optional

import requests

from app.utils.cloud_storage import AssetFolder

logger = logging.getLogger(__name__)


class ClientError(RuntimeError):
    """服务端返回了非 2xx 响应，message 取自响应体的 error 字段"""

    def __init__(self, status_code, message, body=None):
        super().__init__(f'HTTP {status_code}: {message}')
        self.status_code = status_code
        self.message = message
        self.body = body


def _file_tuple(image):
    return (image.filename, image.data, image.content_type)


class BackofficeClient:
    """
    Args:
        base_url: 后台地址，例如 http://localhost:5000
        session: 可注入的 requests.Session（测试时传入替身）
        timeout: 请求超时（秒），默认不设置，沿用 requests 的行为
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout
        self.csrf_token: Optional[str] = None

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method, path, **kwargs):
        headers = dict(kwargs.pop('headers', None) or {})
        if self.csrf_token and method.upper() != 'GET':
            headers['X-CSRFToken'] = self.csrf_token

        resp = self.session.request(method, self.url(path), headers=headers, timeout=self.timeout, **kwargs)
        if not 200 <= resp.status_code < 300:
            try:
                body = resp.json()
            except ValueError:
                body = None
            message = body.get('error') if isinstance(body, dict) else None
            logger.warning(f'{method} {path} -> {resp.status_code}')
            raise ClientError(resp.status_code, message or resp.text or 'Request failed', body)

        try:
            return resp.json()
        except ValueError:
            return {}

    # ------------------------------------------------------------------
    # 会话
    # ------------------------------------------------------------------

    def fetch_csrf_token(self):
        self.csrf_token = self.request('GET', '/api/admin/csrf').get('csrf_token')
        return self.csrf_token

    def login(self, username, password):
        self.fetch_csrf_token()
        return self.request('POST', '/api/admin/login', json={'username': username, 'password': password})

    def logout(self):
        result = self.request('POST', '/api/admin/logout')
        self.csrf_token = None
        return result

    # ------------------------------------------------------------------
    # 图片
    # ------------------------------------------------------------------

    def upload_article_image(self, image):
        """上传单张文章图片，返回 {'url': ..., 'public_id': ...}"""
        return self.request('POST', '/api/upload/article', files={'file': _file_tuple(image)})

    def upload_avatar(self, image):
        return self.request('POST', '/api/upload/admin-user', files={'file': _file_tuple(image)})

    def list_gallery(self, folder, cursor=None):
        folder = AssetFolder(folder)
        params = {'next': cursor} if cursor else None
        return self.request('GET', f'/api/cloudinary/{folder.value}/list', params=params)

    def iter_gallery(self, folder):
        """按游标翻完整个画廊，逐条产出资源记录"""
        cursor = None
        while True:
            page = self.list_gallery(folder, cursor)
            yield from page.get('resources') or []
            cursor = page.get('next_cursor')
            if not cursor:
                break

    def upload_gallery(self, folder, images):
        folder = AssetFolder(folder)
        files = [('files', _file_tuple(img)) for img in images]
        return self.request('POST', f'/api/cloudinary/{folder.value}/upload', files=files).get('uploaded', [])

    def delete_gallery(self, folder, public_id=None, public_ids=None):
        folder = AssetFolder(folder)
        body = {'public_ids': list(public_ids)} if public_ids is not None else {'public_id': public_id}
        return self.request('POST', f'/api/cloudinary/{folder.value}/delete', json=body)

    # ------------------------------------------------------------------
    # 文章
    # ------------------------------------------------------------------

    def list_articles(self):
        return self.request('GET', '/api/article')

    def get_article(self, article_id):
        return self.request('GET', f'/api/article/{article_id}')

    def create_article(self, payload):
        return self.request('POST', '/api/article/add', json=payload)['article']

    def update_article(self, article_id, payload):
        return self.request('PUT', f'/api/article/{article_id}/edit', json=payload)['article']

    def delete_article(self, article_id):
        return self.request('DELETE', f'/api/article/{article_id}/delete')
