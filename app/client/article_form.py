"""
文章编辑表单的提交流程

表单数据是纯数据（ArticleDraft），本地图片挂在 PendingImage 上。
提交时：压缩 -> 并发上传全部待上传图片（任一失败立即停止） -> 只提交一次文章。
失败后草稿与已压缩 / 已上传的图片原样保留，再次提交只补传没完成的部分。
"""
import logging
from concurrent.futures import ThreadPoolExecutor, wait, FIRST_EXCEPTION
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from app.client.upload_state import PendingImage, UploadState

logger = logging.getLogger(__name__)


class DraftSubmitError(Exception):
    """有图片上传失败，文章没有提交"""

    def __init__(self, failures):
        super().__init__(f'{len(failures)} image upload(s) failed')
        self.failures = failures  # [(slot, PendingImage)]


@dataclass
class ContentDraft:
    text: str = ''
    image: str = ''
    pending: Optional[PendingImage] = None

    def image_url(self):
        if self.pending is not None and self.pending.is_done:
            return self.pending.url
        return self.image


@dataclass
class ArticleDraft:
    title: str = ''
    description: str = ''
    author: str = ''
    date: str = ''
    image: str = ''
    cover: Optional[PendingImage] = None
    contents: List[ContentDraft] = field(default_factory=list)

    def pending_images(self):
        """还没上传完成的图片: [('cover' | 下标, PendingImage)]"""
        slots = []
        if self.cover is not None and not self.cover.is_done:
            slots.append(('cover', self.cover))
        for i, block in enumerate(self.contents):
            if block.pending is not None and not block.pending.is_done:
                slots.append((i, block.pending))
        return slots

    def to_payload(self):
        cover = self.cover.url if self.cover is not None and self.cover.is_done else self.image
        return {
            'title': self.title,
            'description': self.description,
            'author': self.author,
            'date': self.date or date.today().isoformat(),
            'image': cover or '',
            'contents': [{'image': b.image_url() or '', 'text': b.text} for b in self.contents],
        }


def _upload_one(client, slot, pending):
    pending.start_upload()
    try:
        asset = client.upload_article_image(pending.file)
    except Exception as e:
        pending.fail(str(e))
        logger.warning(f'Upload failed for slot {slot}: {e}')
        raise
    pending.finish(asset)
    return asset


def submit_draft(client, draft, article_id=None, max_workers=4):
    """
    提交文章草稿

    Args:
        client: BackofficeClient（已登录）
        draft: ArticleDraft
        article_id: 为空时创建，否则整文档更新

    Returns:
        服务端返回的文章文档

    Raises:
        DraftSubmitError: 有图片上传失败，文章未提交
        ClientError: 文章写入被服务端拒绝
    """
    slots = draft.pending_images()

    for _, pending in slots:
        if pending.state == UploadState.ERROR:
            pending.reset()
        pending.compress()

    if slots:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(_upload_one, client, slot, pending): (slot, pending)
                       for slot, pending in slots}
            done, not_done = wait(futures, return_when=FIRST_EXCEPTION)
            for future in not_done:
                future.cancel()

        failures = [futures[f] for f in futures if f.done() and not f.cancelled() and f.exception() is not None]
        if failures:
            raise DraftSubmitError(failures)

    payload = draft.to_payload()
    if article_id is None:
        return client.create_article(payload)
    return client.update_article(article_id, payload)
