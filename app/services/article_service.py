"""文章图片生命周期服务：创建 / 更新 / 删除时保持文档与托管资源一致"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from app.exceptions import AssetStoreError, NotFound, ValidationError
from app.extensions import db, cache, asset_store
from app.models.content import Article
from app.services.asset_cleanup_service import AssetCleanupService
from app.services.upload_service import UploadService
from app.utils.cloud_storage import AssetFolder
from app.utils.image_helpers import document_public_ids, stale_public_ids
from app.utils.validators import validate_article_payload

logger = logging.getLogger(__name__)

ARTICLE_LIST_CACHE_KEY = 'article_list'


class ArticleService:
    """
    一致性约定：
    - 新图片先上传，文档后写入；写入前失败只会留下孤儿新资源，旧图不受影响
    - 旧图在文档写入确认之后才删除；删除失败只会留下孤儿旧资源
    """

    @staticmethod
    def list_articles():
        """按日期倒序列出全部文章"""
        return Article.query.order_by(Article.date.desc(), Article.created_at.desc()).all()

    @staticmethod
    def get_article(article_id):
        article = db.session.get(Article, article_id)
        if article is None:
            raise NotFound('Article not found')
        return article

    @staticmethod
    def _check_slots(data, slot_files):
        """每个内容块图片文件都必须有对应的内容块"""
        for slot in slot_files:
            if slot != 'cover' and slot >= len(data['contents']):
                raise ValidationError(f'No content block for image contents[{slot}]')

    @staticmethod
    def _upload_slots(data, slot_files):
        """上传本地文件并把 URL 填回对应槽位"""
        ArticleService._check_slots(data, slot_files)
        uploaded = UploadService.upload_batch(slot_files, AssetFolder.ARTICLES)
        for slot, asset in uploaded.items():
            if slot == 'cover':
                data['image'] = asset.secure_url
            else:
                data['contents'][slot]['image'] = asset.secure_url
        return uploaded

    @staticmethod
    def _commit_or_discard(uploaded):
        """提交文档；提交失败时本次新上传的资源全部作废"""
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            AssetCleanupService.discard_uploads(uploaded.values(), reason='write_failed')
            raise
        cache.delete(ARTICLE_LIST_CACHE_KEY)

    @staticmethod
    def create_article(payload, slot_files=None):
        """
        创建文章

        Args:
            payload: 请求数据（title / description 必填）
            slot_files: {'cover' | 内容块下标: FileStorage}，并发上传后再写文档

        Returns:
            Article
        """
        data = validate_article_payload(payload)
        uploaded = ArticleService._upload_slots(data, slot_files or {})

        article = Article()
        article.apply(data)
        db.session.add(article)
        ArticleService._commit_or_discard(uploaded)

        logger.info(f'📝 文章已创建: {article.id} {article.href} (上传 {len(uploaded)} 张)')
        return article

    @staticmethod
    def update_article(article_id, payload, slot_files=None):
        """
        整文档替换更新

        旧文档与新数据逐槽位比较，URL 变化（且新文档不再引用）的旧图登记删除，
        登记与文档写入同一事务提交，然后在线尝试删除。
        """
        article = ArticleService.get_article(article_id)
        data = validate_article_payload(payload)
        uploaded = ArticleService._upload_slots(data, slot_files or {})

        stale = stale_public_ids(article.to_document(), data)
        article.apply(data)
        pending = AssetCleanupService.schedule(stale, reason='article_update')
        ArticleService._commit_or_discard(uploaded)

        logger.info(f'✏️ 文章已更新: {article.id} (新上传 {len(uploaded)}，待删除 {len(stale)})')
        AssetCleanupService.process(pending)
        return article

    @staticmethod
    def delete_article(article_id):
        """
        删除文章及其引用的全部图片

        图片逐个删除、互不影响；无论图片删除是否全部成功，文档都会被删除，
        删除失败的图片登记为待删除记录。
        文章已不存在时视为删除成功（幂等）。
        """
        article = db.session.get(Article, article_id)
        if article is None:
            logger.info(f'文章 {article_id} 已不存在，跳过删除')
            return {'deleted_assets': 0, 'failed_assets': []}
        public_ids = document_public_ids(article.to_document())

        failed = []
        for public_id in public_ids:
            try:
                asset_store.delete(public_id)
            except AssetStoreError as e:
                logger.warning(f'⚠️ 文章 {article_id} 的图片删除失败: {public_id} ({e})')
                failed.append((public_id, str(e)))

        for public_id, error in failed:
            AssetCleanupService.schedule([public_id], reason='article_delete', error=error)

        db.session.delete(article)
        db.session.commit()
        cache.delete(ARTICLE_LIST_CACHE_KEY)

        logger.info(f'🗑️ 文章已删除: {article_id} (图片 {len(public_ids) - len(failed)}/{len(public_ids)})')
        return {
            'deleted_assets': len(public_ids) - len(failed),
            'failed_assets': [public_id for public_id, _ in failed],
        }
