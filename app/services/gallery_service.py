"""画廊服务（about / promotion / review）：没有关联文档，只有 上传 / 列表 / 删除"""
import logging

from app.exceptions import ValidationError
from app.extensions import asset_store
from app.services.upload_service import UploadService

logger = logging.getLogger(__name__)


class GalleryService:

    @staticmethod
    def list_page(folder, cursor=None):
        """单页列表，最新在前；next_cursor 为空表示结束"""
        return asset_store.list(folder, cursor=cursor)

    @staticmethod
    def upload(folder, files):
        """上传一组图片，任意失败则整批作废"""
        if not files:
            raise ValidationError('No files provided')
        uploaded = UploadService.upload_batch(dict(enumerate(files)), folder)
        return [uploaded[i] for i in range(len(files))]

    @staticmethod
    def _check_owned(folder, public_ids):
        for public_id in public_ids:
            if not isinstance(public_id, str) or not folder.owns(public_id):
                raise ValidationError(f'Invalid public_id for folder {folder.value}')

    @staticmethod
    def delete(folder, public_id=None, public_ids=None):
        """
        删除单个或一组图片（幂等）

        public_id 必须位于当前文件夹下，防止越权删除其他分区的资源。
        """
        if public_id:
            GalleryService._check_owned(folder, [public_id])
            return {public_id: asset_store.delete(public_id)}

        if isinstance(public_ids, list) and public_ids:
            GalleryService._check_owned(folder, public_ids)
            return asset_store.delete_many(public_ids)

        raise ValidationError('Invalid payload')
