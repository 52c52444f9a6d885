"""
图片地址工具
文档只保存交付 URL，删除资源前需要从 URL 反推 public_id。
"""
import re
from collections import namedtuple
from urllib.parse import unquote, urlsplit

# 允许的交付域名（Cloudinary 及其子域）
DELIVERY_HOST_SUFFIX = 'cloudinary.com'

# 版本号只能紧跟 /upload/ 或变换参数段（q_auto,f_auto / c_fill,w_300 ...）
_VERSIONED = re.compile(r'/upload/(?:[a-z]{1,3}_[^/]*/)*v\d+/(?P<rest>.+)$')
_PLAIN = re.compile(r'/upload/(?P<rest>.+)$')
_EXTENSION = re.compile(r'\.[A-Za-z0-9]+$')
_VERSION_ONLY = re.compile(r'^v\d+$')

ImageChange = namedtuple('ImageChange', ['slot', 'old_url', 'new_url'])


def extract_public_id(url):
    """
    从交付 URL 提取 public_id

    https://res.cloudinary.com/demo/image/upload/v123/articles/photo.jpg?x=1
    -> 'articles/photo'

    不符合格式（空串、外部域名、路径残缺）一律返回 None，调用方视为“无需删除”。
    """
    if not url or not isinstance(url, str):
        return None

    parts = urlsplit(url.strip())
    host = (parts.hostname or '').lower()
    if parts.scheme not in ('http', 'https'):
        return None
    if host != DELIVERY_HOST_SUFFIX and not host.endswith('.' + DELIVERY_HOST_SUFFIX):
        return None

    path = parts.path
    match = _VERSIONED.search(path) or _PLAIN.search(path)
    if not match:
        return None

    rest = _EXTENSION.sub('', match.group('rest')).strip('/')
    if not rest or _VERSION_ONLY.match(rest):
        return None
    return unquote(rest)


def referenced_urls(doc):
    """文档引用的全部图片 URL（封面 + 内容块），按出现顺序"""
    urls = []
    if doc.get('image'):
        urls.append(doc['image'])
    for block in doc.get('contents') or []:
        if block.get('image'):
            urls.append(block['image'])
    return urls


def collect_image_changes(existing, updated):
    """
    逐个槽位比较新旧文档的图片 URL

    内容块按下标对应（不是按身份），旧 URL 非空且与新 URL 不同即视为变化，
    包括内容块被删掉的情况。
    """
    changes = []
    old_cover = existing.get('image') or ''
    new_cover = updated.get('image') or ''
    if old_cover and old_cover != new_cover:
        changes.append(ImageChange('cover', old_cover, new_cover))

    old_contents = existing.get('contents') or []
    new_contents = updated.get('contents') or []
    for i in range(max(len(old_contents), len(new_contents))):
        old_img = old_contents[i].get('image', '') if i < len(old_contents) else ''
        new_img = new_contents[i].get('image', '') if i < len(new_contents) else ''
        if old_img and old_img != new_img:
            changes.append(ImageChange(i, old_img, new_img))
    return changes


def stale_public_ids(existing, updated):
    """
    更新后需要删除的 public_id

    新文档里仍被引用的 URL（例如内容块挪了位置）不会被删除。
    """
    still_used = set(referenced_urls(updated))
    result = []
    for change in collect_image_changes(existing, updated):
        if change.old_url in still_used:
            continue
        public_id = extract_public_id(change.old_url)
        if public_id and public_id not in result:
            result.append(public_id)
    return result


def document_public_ids(doc):
    """文档引用的全部可解析 public_id（去重）"""
    result = []
    for url in referenced_urls(doc):
        public_id = extract_public_id(url)
        if public_id and public_id not in result:
            result.append(public_id)
    return result
