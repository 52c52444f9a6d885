"""托管资源清理服务：待删除记录的登记、在线尝试与离线补偿"""
import logging
from collections import namedtuple

from sqlalchemy.exc import SQLAlchemyError

from app.exceptions import AssetStoreError
from app.extensions import db, asset_store
from app.models.asset import PendingAssetDeletion

logger = logging.getLogger(__name__)

CleanupResult = namedtuple('CleanupResult', ['deleted', 'failed'])


class AssetCleanupService:
    """
    清理失败只记日志、不向调用方抛出：
    文档写入成功后，清理失败最多留下孤儿资源，不会留下坏链接。
    """

    @staticmethod
    def schedule(public_ids, reason, error=None):
        """登记待删除资源（只加入会话，由调用方与文档写入一起提交）"""
        rows = []
        for public_id in public_ids:
            row = PendingAssetDeletion(
                public_id=public_id,
                reason=reason,
                attempts=1 if error else 0,
                last_error=error,
            )
            db.session.add(row)
            rows.append(row)
        return rows

    @staticmethod
    def process(rows):
        """
        逐个删除已登记的资源，互不影响
        成功的记录被移除，失败的记录累加尝试次数并保留错误信息
        """
        deleted = failed = 0
        for row in rows:
            try:
                asset_store.delete(row.public_id)
            except AssetStoreError as e:
                row.attempts = (row.attempts or 0) + 1
                row.last_error = str(e)
                failed += 1
                logger.warning(f'⚠️ 资源清理失败，稍后重试: {row.public_id} ({e})')
                continue
            db.session.delete(row)
            deleted += 1

        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f'❌ 清理记录提交失败: {e}')
        return CleanupResult(deleted, failed)

    @staticmethod
    def discard_uploads(assets, reason='upload_aborted'):
        """整批上传中止或文档写入失败时，清理已经上传成功的那部分"""
        public_ids = [a.public_id for a in assets if a is not None and a.public_id]
        if not public_ids:
            return CleanupResult(0, 0)
        logger.info(f'↩️ 丢弃未被引用的上传: {public_ids}')
        try:
            rows = AssetCleanupService.schedule(public_ids, reason)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f'❌ 无法登记待删除资源 {public_ids}: {e}')
            return CleanupResult(0, len(public_ids))
        return AssetCleanupService.process(rows)

    @staticmethod
    def pending(limit=None):
        """按登记先后列出待删除记录"""
        query = PendingAssetDeletion.query.order_by(PendingAssetDeletion.created_at, PendingAssetDeletion.id)
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def sweep(limit=None):
        """离线补偿：重试所有待删除记录（幂等，not found 视为成功）"""
        rows = AssetCleanupService.pending(limit)
        if not rows:
            return CleanupResult(0, 0)
        result = AssetCleanupService.process(rows)
        logger.info(f'🧹 清理完成: 删除 {result.deleted}，失败 {result.failed}')
        return result
