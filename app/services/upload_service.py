"""批量上传服务：并发上传一组图片，任何一张失败则整批作废"""
import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait

from flask import current_app

from app.exceptions import AssetUploadError, ClinicException
from app.extensions import asset_store
from app.services.asset_cleanup_service import AssetCleanupService
from app.utils.cloud_storage import ensure_image

logger = logging.getLogger(__name__)


class UploadService:

    @staticmethod
    def upload_batch(files, folder, transform=None):
        """
        并发上传

        Args:
            files: {key: FileStorage}，key 由调用方决定（槽位 / 序号）
            folder: AssetFolder
            transform: 上传变换参数

        Returns:
            {key: StoredAsset}

        任意一张失败：尚未开始的上传被取消，已完成的上传登记清理，
        然后抛出 AssetUploadError，调用方不得写入任何文档。
        """
        if not files:
            return {}

        # 先整体校验类型，避免上传到一半才发现
        for f in files.values():
            ensure_image(f.mimetype)

        workers = max(1, min(len(files), current_app.config.get('ARTICLE_UPLOAD_WORKERS', 4)))
        uploaded, failure = {}, None

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(asset_store.upload, f, folder, transform): key
                for key, f in files.items()
            }
            _, not_done = wait(futures, return_when=FIRST_EXCEPTION)
            for future in not_done:
                future.cancel()

        for future, key in futures.items():
            if future.cancelled():
                continue
            error = future.exception()
            if error is None:
                uploaded[key] = future.result()
            elif failure is None:
                failure = error

        if failure is not None:
            logger.error(f'❌ 批量上传中止 ({len(uploaded)}/{len(files)} 已上传): {failure}')
            AssetCleanupService.discard_uploads(uploaded.values())
            if isinstance(failure, ClinicException):
                raise failure
            raise AssetUploadError() from failure

        return uploaded
