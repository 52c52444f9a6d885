from datetime import datetime, timedelta

from flask import current_app
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from app.extensions import db
from .base import BaseModel


class AdminUser(UserMixin, BaseModel):
    """后台员工账号"""
    __tablename__ = 'auth_admin_users'
    __serialize_exclude__ = ('password_hash', 'failed_login_attempts', 'locked_until')

    username = db.Column(db.String(64), unique=True, index=True, nullable=False)
    email = db.Column(db.String(128), unique=True, index=True, nullable=True)
    password_hash = db.Column(db.String(256))
    avatar_url = db.Column(db.String(512), default='')
    role = db.Column(db.String(20), default='viewer')  # superadmin, admin, operator, viewer
    active = db.Column(db.Boolean, default=True)
    last_login = db.Column(db.DateTime)

    # 安全字段
    failed_login_attempts = db.Column(db.Integer, default=0)
    locked_until = db.Column(db.DateTime, nullable=True)

    @property
    def password(self):
        raise AttributeError('密码不可读')

    @password.setter
    def password(self, password):
        self.password_hash = generate_password_hash(password)

    def verify_password(self, password):
        return check_password_hash(self.password_hash or '', password or '')

    def is_locked(self):
        """检查账号是否被锁定"""
        return bool(self.locked_until and datetime.utcnow() < self.locked_until)

    def record_failed_login(self):
        """记录登录失败，超过阈值后锁定"""
        self.failed_login_attempts = (self.failed_login_attempts or 0) + 1
        if self.failed_login_attempts >= current_app.config['LOGIN_MAX_FAILED_ATTEMPTS']:
            self.locked_until = datetime.utcnow() + timedelta(
                minutes=current_app.config['LOGIN_LOCK_MINUTES'])
        db.session.commit()

    def reset_failed_attempts(self):
        """登录成功：清零失败次数并记录登录时间"""
        self.failed_login_attempts = 0
        self.locked_until = None
        self.last_login = datetime.utcnow()
        db.session.commit()

    # Flask-Login 必须属性覆盖
    @property
    def is_active(self):
        return bool(self.active) and not self.is_locked()

    def __repr__(self):
        return f'<AdminUser {self.username}>'
