from app.extensions import db
from .base import BaseModel

class AuditLog(BaseModel):
    """后台操作审计"""
    __tablename__ = 'sys_audit_logs'

    user_id = db.Column(db.Integer, db.ForeignKey('auth_admin_users.id', ondelete='SET NULL'), nullable=True)
    username = db.Column(db.String(64))
    module = db.Column(db.String(32)) # e.g., 'article', 'gallery'
    action = db.Column(db.String(64)) # e.g., 'create', 'delete'
    ip_address = db.Column(db.String(64))
    details = db.Column(db.Text) # JSON 详情
