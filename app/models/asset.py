from app.extensions import db
from .base import BaseModel


class PendingAssetDeletion(BaseModel):
    """
    待删除的托管资源

    与文档写入在同一事务中落库，随后在线尝试删除；
    失败的记录保留下来，由 `flask assets sweep` 重试。
    """
    __tablename__ = 'asset_pending_deletions'

    public_id = db.Column(db.String(512), nullable=False, index=True)
    reason = db.Column(db.String(64))  # article_update, article_delete, upload_aborted ...
    attempts = db.Column(db.Integer, default=0)
    last_error = db.Column(db.Text)

    def __repr__(self):
        return f'<PendingAssetDeletion {self.public_id} x{self.attempts}>'
