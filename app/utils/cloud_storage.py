"""
云存储工具模块
封装 Cloudinary 资源托管：按文件夹分区的流式上传、游标分页列表、按 public_id 删除。
文章 / 画廊 / 头像都通过这里访问资源托管服务。
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import cloudinary
import cloudinary.api
import cloudinary.uploader

from app.exceptions import AssetStoreError, AssetUploadError, UnsupportedMediaType

logger = logging.getLogger(__name__)

# Cloudinary Admin API 单页上限为 500，后台统一使用 100
DEFAULT_PAGE_SIZE = 100


class AssetFolder(str, Enum):
    """资源托管上的文件夹分区，拼错的文件夹名不会悄悄生成新的命名空间"""
    ABOUT = 'about'
    PROMOTION = 'promotion'
    REVIEW = 'review'
    ARTICLES = 'articles'
    ADMIN_USER = 'admin-user'

    @property
    def prefix(self):
        return f'{self.value}/'

    def owns(self, public_id):
        """public_id 是否属于本文件夹"""
        return bool(public_id) and public_id.startswith(self.prefix)


# 画廊类文件夹：没有关联文档，只有 上传 / 列表 / 删除
GALLERY_FOLDERS = (AssetFolder.ABOUT, AssetFolder.PROMOTION, AssetFolder.REVIEW)

# 头像上传变换（300x300 人脸裁剪）
AVATAR_TRANSFORM = {
    'quality': 'auto',
    'crop': 'thumb',
    'gravity': 'face',
    'width': 300,
    'height': 300,
}

# 默认交给 Cloudinary 做智能压缩
DEFAULT_TRANSFORM = {'quality': 'auto'}


@dataclass
class StoredAsset:
    """上传 / 列表返回的图片记录，字段原样交给调用方"""
    public_id: str
    secure_url: str
    asset_id: Optional[str] = None
    format: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    bytes: Optional[int] = None
    created_at: Optional[str] = None

    @classmethod
    def from_result(cls, result):
        return cls(
            public_id=result.get('public_id'),
            secure_url=result.get('secure_url'),
            asset_id=result.get('asset_id'),
            format=result.get('format'),
            width=result.get('width'),
            height=result.get('height'),
            bytes=result.get('bytes'),
            created_at=result.get('created_at'),
        )

    def to_dict(self):
        return {
            'asset_id': self.asset_id,
            'public_id': self.public_id,
            'format': self.format,
            'width': self.width,
            'height': self.height,
            'bytes': self.bytes,
            'secure_url': self.secure_url,
            'created_at': self.created_at,
        }


@dataclass
class AssetPage:
    """一页资源；next_cursor 为空表示已到末尾"""
    resources: List[StoredAsset] = field(default_factory=list)
    next_cursor: Optional[str] = None

    def to_dict(self):
        return {
            'resources': [r.to_dict() for r in self.resources],
            'next_cursor': self.next_cursor or None,
        }


def ensure_image(content_type):
    """只接受 image/* 类型，其余一律 415"""
    if not content_type or not content_type.lower().startswith('image/'):
        raise UnsupportedMediaType()


class AssetStore:
    """
    Cloudinary 客户端封装（Flask 扩展风格，init_app 时读取配置）

    方法内不依赖 current_app，可以在上传线程池中直接调用。
    """

    def __init__(self, app=None):
        self.configured = False
        self.page_size = DEFAULT_PAGE_SIZE
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """初始化云存储配置"""
        cloudinary_url = app.config.get('CLOUDINARY_URL')
        cloud_name = app.config.get('CLOUDINARY_CLOUD_NAME')
        api_key = app.config.get('CLOUDINARY_API_KEY')
        api_secret = app.config.get('CLOUDINARY_API_SECRET')
        self.page_size = app.config.get('ASSET_LIST_PAGE_SIZE', DEFAULT_PAGE_SIZE)

        if cloudinary_url:
            cloudinary.config(cloudinary_url=cloudinary_url)
            self.configured = True
        elif cloud_name and api_key and api_secret:
            cloudinary.config(
                cloud_name=cloud_name,
                api_key=api_key,
                api_secret=api_secret,
                secure=True
            )
            self.configured = True

        if self.configured:
            app.logger.info('✅ Cloudinary 云存储已配置')
        else:
            app.logger.warning('⚠️ 未配置 Cloudinary，图片上传 / 删除将失败')

        app.extensions['asset_store'] = self

    def upload(self, file, folder, transform=None, content_type=None):
        """
        流式上传一张图片到指定文件夹

        Args:
            file: 文件对象 (werkzeug FileStorage 或任意可 read() 的流)
            folder: AssetFolder 分区
            transform: Cloudinary 上传变换参数，缺省为 quality=auto
            content_type: 声明的 MIME 类型，缺省读取 file.mimetype

        Returns:
            StoredAsset
        """
        folder = AssetFolder(folder)
        ensure_image(content_type or getattr(file, 'mimetype', None))

        # FileStorage 直接交出底层流，SDK 以 multipart 方式流式发送
        stream = getattr(file, 'stream', file)
        options = dict(DEFAULT_TRANSFORM if transform is None else transform)
        options.update(folder=folder.value, resource_type='image')

        try:
            result = cloudinary.uploader.upload(stream, **options)
        except Exception as e:
            logger.error(f'❌ 上传到 {folder.value} 失败: {e}')
            raise AssetUploadError() from e

        asset = StoredAsset.from_result(result)
        logger.info(f'✅ 图片已上传: {asset.public_id} ({asset.bytes} bytes)')
        return asset

    def list(self, folder, cursor=None, max_results=None):
        """
        列出文件夹内的图片，最新的在前

        Args:
            folder: AssetFolder 分区
            cursor: 上一页返回的 next_cursor，首页传 None

        Returns:
            AssetPage
        """
        folder = AssetFolder(folder)
        params = {
            'type': 'upload',
            'resource_type': 'image',
            'prefix': folder.prefix,
            'max_results': max_results or self.page_size,
            'direction': 'desc',
        }
        if cursor:
            params['next_cursor'] = cursor

        try:
            result = cloudinary.api.resources(**params)
        except Exception as e:
            logger.error(f'❌ 列出 {folder.value} 失败: {e}')
            raise AssetStoreError('Failed to list images') from e

        resources = [StoredAsset.from_result(r) for r in result.get('resources') or []]
        return AssetPage(resources=resources, next_cursor=result.get('next_cursor'))

    def delete(self, public_id):
        """
        删除单个资源，幂等：已不存在的资源同样视为成功

        Returns:
            'ok' 或 'not found'
        """
        try:
            result = cloudinary.uploader.destroy(
                public_id, resource_type='image', invalidate=True
            )
        except Exception as e:
            logger.error(f'❌ 删除云存储文件失败 {public_id}: {e}')
            raise AssetStoreError('Delete failed') from e

        outcome = result.get('result')
        if outcome not in ('ok', 'not found'):
            logger.warning(f'⚠️ 云存储文件删除失败: {public_id} -> {outcome}')
            raise AssetStoreError('Delete failed', payload={'detail': result})

        logger.info(f'🗑️ 云存储文件已删除: {public_id} ({outcome})')
        return outcome

    def delete_many(self, public_ids):
        """批量删除，返回 {public_id: 'deleted' | 'not_found'}"""
        if not public_ids:
            return {}
        try:
            result = cloudinary.api.delete_resources(
                list(public_ids), resource_type='image', invalidate=True
            )
        except Exception as e:
            logger.error(f'❌ 批量删除失败 {public_ids}: {e}')
            raise AssetStoreError('Delete failed') from e

        logger.info(f'🗑️ 批量删除 {len(public_ids)} 个资源')
        return result.get('deleted') or {}
